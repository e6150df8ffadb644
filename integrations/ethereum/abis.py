"""Minimal ABIs for the contracts the keeper calls."""


def _fn(name, inputs, outputs=(), mutability="nonpayable"):
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t} for n, t in outputs],
    }


ERC20_ABI = [
    _fn("balanceOf", [("owner", "address")], [("", "uint256")], "view"),
    _fn("allowance", [("owner", "address"), ("spender", "address")], [("", "uint256")], "view"),
    _fn("approve", [("spender", "address"), ("amount", "uint256")], [("", "bool")]),
    _fn("decimals", [], [("", "uint8")], "view"),
]

STABILITY_POOL_ABI = [
    _fn("provideToSP", [("_amount", "uint256"), ("_frontEndTag", "address")]),
    _fn("withdrawFromSP", [("_amount", "uint256")]),
    _fn("getCompoundedLUSDDeposit", [("_depositor", "address")], [("", "uint256")], "view"),
    _fn("getDepositorLQTYGain", [("_depositor", "address")], [("", "uint256")], "view"),
    _fn("getDepositorETHGain", [("_depositor", "address")], [("", "uint256")], "view"),
]

_EXACT_INPUT_SINGLE = {
    "type": "function",
    "name": "exactInputSingle",
    "stateMutability": "payable",
    "inputs": [{
        "name": "params",
        "type": "tuple",
        "components": [
            {"name": "tokenIn", "type": "address"},
            {"name": "tokenOut", "type": "address"},
            {"name": "fee", "type": "uint24"},
            {"name": "recipient", "type": "address"},
            {"name": "deadline", "type": "uint256"},
            {"name": "amountIn", "type": "uint256"},
            {"name": "amountOutMinimum", "type": "uint256"},
            {"name": "sqrtPriceLimitX96", "type": "uint160"},
        ],
    }],
    "outputs": [{"name": "amountOut", "type": "uint256"}],
}

_EXACT_INPUT = {
    "type": "function",
    "name": "exactInput",
    "stateMutability": "payable",
    "inputs": [{
        "name": "params",
        "type": "tuple",
        "components": [
            {"name": "path", "type": "bytes"},
            {"name": "recipient", "type": "address"},
            {"name": "deadline", "type": "uint256"},
            {"name": "amountIn", "type": "uint256"},
            {"name": "amountOutMinimum", "type": "uint256"},
        ],
    }],
    "outputs": [{"name": "amountOut", "type": "uint256"}],
}

SWAP_ROUTER_ABI = [
    _EXACT_INPUT_SINGLE,
    _EXACT_INPUT,
    _fn("refundETH", [], [], "payable"),
    _fn("multicall", [("data", "bytes[]")], [("results", "bytes[]")], "payable"),
]

CURVE_POOL_ABI = [
    _fn("get_dy", [("i", "int128"), ("j", "int128"), ("dx", "uint256")], [("", "uint256")], "view"),
    _fn("get_dy_underlying", [("i", "int128"), ("j", "int128"), ("dx", "uint256")], [("", "uint256")], "view"),
    _fn("exchange", [("i", "int128"), ("j", "int128"), ("dx", "uint256"), ("min_dy", "uint256")], [("", "uint256")]),
    _fn(
        "exchange_underlying",
        [("i", "int128"), ("j", "int128"), ("dx", "uint256"), ("min_dy", "uint256")],
        [("", "uint256")],
    ),
    _fn("coins", [("i", "uint256")], [("", "address")], "view"),
]

LIQUITY_PRICE_FEED_ABI = [
    _fn("lastGoodPrice", [], [("", "uint256")], "view"),
]

CHAINLINK_AGGREGATOR_ABI = [
    _fn("decimals", [], [("", "uint8")], "view"),
    _fn(
        "latestRoundData",
        [],
        [
            ("roundId", "uint80"),
            ("answer", "int256"),
            ("startedAt", "uint256"),
            ("updatedAt", "uint256"),
            ("answeredInRound", "uint80"),
        ],
        "view",
    ),
]

VAULT_ABI = [
    _fn("strategies", [("strategy", "address")], [
        ("performanceFee", "uint256"),
        ("activation", "uint256"),
        ("debtRatio", "uint256"),
        ("minDebtPerHarvest", "uint256"),
        ("maxDebtPerHarvest", "uint256"),
        ("lastReport", "uint256"),
        ("totalDebt", "uint256"),
        ("totalGain", "uint256"),
        ("totalLoss", "uint256"),
    ], "view"),
    _fn("debtOutstanding", [("strategy", "address")], [("", "uint256")], "view"),
    _fn("report", [("gain", "uint256"), ("loss", "uint256"), ("_debtPayment", "uint256")], [("", "uint256")]),
]
