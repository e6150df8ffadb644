"""
Harvest Strategies

Each strategy is driven by an upstream vault and provides:
- harvest(): Claim, convert, report and redeploy
- prepare_return() / adjust_position(): The two halves of a harvest
- get_name(): Return strategy name
"""

from strategies.stability_pool import HarvestReport, StabilityPoolStrategy

__all__ = ["HarvestReport", "StabilityPoolStrategy"]
