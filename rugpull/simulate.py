"""Offline round simulation for checking the house edge.

Generates rounds without a deck or a clock and reports how often each round
type came up, how high prices got, and what a player who always cashes out
at a fixed multiplier would get back per $1 staked.
"""

from collections import Counter
from dataclasses import dataclass, field

from rugpull.chart import ROUND_TYPES, ChartGenerator, Round


@dataclass
class SimulationReport:
    rounds: int
    counts: Counter = field(default_factory=Counter)
    peak_sum: dict[str, float] = field(default_factory=dict)
    cashout_targets: tuple[float, ...] = ()
    payouts: dict[float, float] = field(default_factory=dict)

    def frequency(self, round_type: str) -> float:
        return self.counts[round_type] / self.rounds if self.rounds else 0.0

    def return_to_player(self, target: float) -> float:
        """Average payout per $1 when cashing out at `target`."""
        return self.payouts.get(target, 0.0) / self.rounds if self.rounds else 0.0


def first_reach(rnd: Round, target: float) -> bool:
    """True if the live price touches `target` before the crash."""
    return any(p.price >= target for p in rnd.price_points[:-1])


def simulate_rounds(generator: ChartGenerator, rounds: int, duration: int = 15,
                    cashout_targets=(1.1, 1.2, 1.5, 2.0, 3.0)) -> SimulationReport:
    report = SimulationReport(rounds=rounds, cashout_targets=tuple(cashout_targets))
    for _ in range(rounds):
        rnd = generator.generate_chart(duration)
        report.counts[rnd.type] += 1
        report.peak_sum[rnd.type] = report.peak_sum.get(rnd.type, 0.0) + rnd.max_price
        for target in report.cashout_targets:
            if first_reach(rnd, target):
                report.payouts[target] = report.payouts.get(target, 0.0) + target
    return report


def format_report(report: SimulationReport) -> str:
    lines = [f"Rounds: {report.rounds:,}", ""]
    lines.append(f"{'type':<14}{'freq':>8}{'expected':>10}{'avg max':>10}")
    for name, probability in ROUND_TYPES:
        count = report.counts[name]
        avg_max = report.peak_sum.get(name, 0.0) / count if count else 0.0
        lines.append(
            f"{name:<14}{report.frequency(name):>8.3f}{probability:>10.2f}{avg_max:>9.2f}x"
        )
    lines.append("")
    for target in report.cashout_targets:
        rtp = report.return_to_player(target)
        lines.append(f"cash out at {target:.2f}x: RTP {rtp:.3f}  edge {1 - rtp:+.3f}")
    return "\n".join(lines)
