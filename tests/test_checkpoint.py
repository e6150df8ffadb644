"""Tests for atomic execution and checkpoints."""

import logging
from unittest.mock import MagicMock

import pytest

from integrations.ethereum.checkpoint import EvmSnapshotCheckpoint
from integrations.simulated.chain import SimulatedChain
from keeper.core.checkpoint import CompositeCheckpoint, NullCheckpoint, atomic
from keeper.core.errors import ExternalCallError

TOKEN = "0x6B175474E89094C44Da98b954EedeAC495271d0F"
HOLDER = "0x00000000000000000000000000000000000000a1"


class TestAtomic:

    def test_changes_kept_on_success(self):
        chain = SimulatedChain()

        with atomic(chain, "mint"):
            chain.mint(TOKEN, HOLDER, 10)

        assert chain.balance_of(TOKEN, HOLDER) == 10

    def test_changes_undone_on_error(self):
        chain = SimulatedChain()
        chain.mint(TOKEN, HOLDER, 10)

        with pytest.raises(ExternalCallError):
            with atomic(chain, "transfer"):
                chain.mint(TOKEN, HOLDER, 5)
                chain.record(HOLDER, TOKEN, "transfer")
                chain.transfer(TOKEN, HOLDER, TOKEN, 100)

        assert chain.balance_of(TOKEN, HOLDER) == 10
        assert chain.transactions == []

    def test_null_checkpoint_reraises(self):
        with pytest.raises(RuntimeError):
            with atomic(NullCheckpoint(), "noop"):
                raise RuntimeError("boom")

    def test_composite_restores_in_reverse(self):
        calls = []
        first, second = MagicMock(), MagicMock()
        first.snapshot.return_value = "s1"
        second.snapshot.return_value = "s2"
        first.restore.side_effect = lambda token: calls.append(("first", token))
        second.restore.side_effect = lambda token: calls.append(("second", token))

        with pytest.raises(ValueError):
            with atomic(CompositeCheckpoint([first, second]), "composite"):
                raise ValueError("boom")

        assert calls == [("second", "s2"), ("first", "s1")]

    def test_rollback_recorded_in_activity_log(self, caplog):
        with caplog.at_level(logging.ERROR, logger="keeper.activity"):
            with pytest.raises(ExternalCallError):
                with atomic(NullCheckpoint(), "harvest"):
                    raise ExternalCallError("exchange reverted")

        record = caplog.records[-1]
        assert record.name == "keeper.activity"
        assert record.extra_context["operation"] == "harvest"
        assert record.extra_context["error_type"] == "ExternalCallError"


class TestSimulatedChain:

    def test_transfer_from_requires_allowance(self):
        chain = SimulatedChain()
        chain.mint(TOKEN, HOLDER, 10)

        with pytest.raises(ExternalCallError, match="allowance"):
            chain.transfer_from(TOKEN, "0x00000000000000000000000000000000000000b2", HOLDER, TOKEN, 5)

    def test_transfer_from_spends_allowance(self):
        chain = SimulatedChain()
        spender = "0x00000000000000000000000000000000000000b2"
        chain.mint(TOKEN, HOLDER, 10)
        chain.approve(TOKEN, HOLDER, spender, 7)

        chain.transfer_from(TOKEN, spender, HOLDER, spender, 5)

        assert chain.allowance(TOKEN, HOLDER, spender) == 2
        assert chain.balance_of(TOKEN, spender) == 5

    def test_addresses_compared_case_insensitively(self):
        chain = SimulatedChain()
        chain.mint(TOKEN.lower(), HOLDER.upper().replace("0X", "0x"), 3)

        assert chain.balance_of(TOKEN, HOLDER) == 3


class TestEvmSnapshotCheckpoint:

    def test_snapshot_and_revert(self):
        w3 = MagicMock()
        w3.provider.make_request.side_effect = [{"result": "0x1"}, {"result": True}]
        checkpoint = EvmSnapshotCheckpoint(w3)

        token = checkpoint.snapshot()
        checkpoint.restore(token)

        assert token == "0x1"
        w3.provider.make_request.assert_any_call("evm_snapshot", [])
        w3.provider.make_request.assert_any_call("evm_revert", ["0x1"])

    def test_failed_revert_raises(self):
        w3 = MagicMock()
        w3.provider.make_request.return_value = {"result": False}

        with pytest.raises(ExternalCallError):
            EvmSnapshotCheckpoint(w3).restore("0x1")
