"""Price curve synthesis for Rug Pull rounds.

Every round opens with the same scripted chaos, wanders through random
segments, and crashes to zero shortly before its scheduled end. The house
edge comes from the round-type weights; nothing in the visible path says
which type is playing.
"""

import math
import random
from dataclasses import dataclass

# -- round types -------------------------------------------------------------
INSTANT_LOSS = "instant_loss"
SMALL_PEAK = "small_peak"
MEDIUM_PEAK = "medium_peak"
MOON_SHOT = "moon_shot"

# walked in this order; a draw on a boundary goes to the earlier bucket
ROUND_TYPES = [
    (INSTANT_LOSS, 0.40),
    (SMALL_PEAK, 0.35),
    (MEDIUM_PEAK, 0.20),
    (MOON_SHOT, 0.05),
]
PEAK_RANGES = {
    SMALL_PEAK: (1.1, 1.3),
    MEDIUM_PEAK: (1.5, 2.0),
    MOON_SHOT: (3.0, 5.0),
}

# -- opening chaos -----------------------------------------------------------
OPENING_PATTERN = "chaos"
START_PRICE = 1.0
TICK_INTERVAL = 0.15
OPENING_RANGE = (1.5, 2.5)
SWING_RANGE = (0.10, 0.35)
CHAOS_FLOOR = 0.25
CHAOS_CEILING = 1.60
FLIP_CHANCE = 0.70

# -- body --------------------------------------------------------------------
CRASH_LEAD_RANGE = (0.2, 0.4)
SEGMENT_RANGE = (0.5, 2.0)
PEAK_TIME_RANGE = (0.3, 0.6)
PEAK_TOLERANCE = 0.999
INSTANT_LOSS_CEILING = 1.0
PRICE_FLOOR = 0.01
MAX_SEGMENTS = 1000
PLATEAU_NOISE = 0.03
GRADUAL_NOISE = 0.01

FLAT = "flat"
SPIKE_UP = "spike_up"
SPIKE_DOWN = "spike_down"
CHOPPY = "choppy"
GRADUAL_CLIMB = "gradual_climb"
GRADUAL_FALL = "gradual_fall"

SEGMENT_TYPES = [FLAT, SPIKE_UP, SPIKE_DOWN, CHOPPY, GRADUAL_CLIMB, GRADUAL_FALL]
UPWARD_TYPES = [SPIKE_UP, GRADUAL_CLIMB]
# weights follow SEGMENT_TYPES order
UNBIASED_WEIGHTS = [1, 1, 1, 1, 1, 1]
CLIMB_WEIGHTS = [1, 4, 0.5, 1, 4, 0.5]

MAGNITUDES = {
    FLAT: (0.0, 0.02),
    SPIKE_UP: (0.15, 0.45),
    SPIKE_DOWN: (0.15, 0.40),
    CHOPPY: (0.05, 0.15),
    GRADUAL_CLIMB: (0.10, 0.40),
    GRADUAL_FALL: (0.10, 0.35),
}


@dataclass(frozen=True)
class PricePoint:
    time: float
    price: float
    day: int

    @classmethod
    def at(cls, time: float, price: float) -> "PricePoint":
        return cls(time=time, price=price, day=math.floor(time) + 1)


@dataclass(frozen=True)
class Round:
    type: str
    peak_multiplier: float
    price_points: tuple[PricePoint, ...]
    duration: float
    opening_pattern: str | None = OPENING_PATTERN

    @property
    def crash_time(self) -> float:
        return self.price_points[-1].time

    @property
    def max_price(self) -> float:
        return max(p.price for p in self.price_points)


def ease_in_out_cubic(t: float) -> float:
    if t < 0.5:
        return 4 * t * t * t
    return 1 - (-2 * t + 2) ** 3 / 2


def get_price_at_time(points, t: float) -> float:
    """Linearly interpolated price at `t` seconds into the round."""
    if not points:
        return START_PRICE
    if t <= 0:
        return points[0].price
    last = points[-1]
    if t >= last.time:
        return last.price

    for a, b in zip(points, points[1:]):
        if a.time <= t < b.time:
            frac = (t - a.time) / (b.time - a.time)
            return a.price + frac * (b.price - a.price)

    return last.price


class ChartGenerator:
    """Builds complete price paths from an injected random source."""

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    def generate_chart(self, duration: float) -> Round:
        if duration <= 0:
            raise ValueError(f"round duration must be positive, got {duration}")

        round_type = self.select_round_type()
        peak = self.peak_target(round_type)
        crash_time = max(0.0, duration - self.rng.uniform(*CRASH_LEAD_RANGE))

        points = self.generate_opening(self.rng.uniform(*OPENING_RANGE), limit=crash_time)
        ceiling = peak if peak > 0 else INSTANT_LOSS_CEILING
        points.extend(self._generate_body(points[-1], crash_time, peak, ceiling))
        points.append(PricePoint.at(crash_time, 0.0))

        return Round(
            type=round_type,
            peak_multiplier=peak,
            price_points=tuple(points),
            duration=duration,
        )

    def select_round_type(self) -> str:
        draw = self.rng.random()
        cumulative = 0.0
        for name, probability in ROUND_TYPES:
            cumulative += probability
            if draw <= cumulative:
                return name
        return ROUND_TYPES[0][0]

    def peak_target(self, round_type: str) -> float:
        if round_type not in PEAK_RANGES:
            return 0.0
        return self.rng.uniform(*PEAK_RANGES[round_type])

    def generate_opening(self, length: float, limit: float | None = None) -> list[PricePoint]:
        """Violent back-and-forth swings, the same for every round type."""
        price = START_PRICE
        direction = 1 if self.rng.random() < 0.5 else -1
        points = [PricePoint.at(0.0, price)]

        for i in range(1, int(length / TICK_INTERVAL) + 1):
            t = i * TICK_INTERVAL
            if limit is not None and t >= limit:
                break
            price *= 1 + direction * self.rng.uniform(*SWING_RANGE)
            price = max(CHAOS_FLOOR, min(CHAOS_CEILING, price))
            points.append(PricePoint.at(t, price))
            if self.rng.random() < FLIP_CHANCE:
                direction = -direction

        return points

    def _generate_body(self, start: PricePoint, crash_time: float,
                       peak: float, ceiling: float) -> list[PricePoint]:
        points: list[PricePoint] = []
        t, price = start.time, start.price

        peak_time = t
        if peak > 0:
            peak_time = t + self.rng.uniform(*PEAK_TIME_RANGE) * (crash_time - t)
        peak_reached = peak <= 0 or price >= peak * PEAK_TOLERANCE

        for _ in range(MAX_SEGMENTS):
            if t >= crash_time:
                break
            end = min(t + self.rng.uniform(*SEGMENT_RANGE), crash_time)
            if end - t < TICK_INTERVAL:
                # the crash point closes the path from here
                break

            target = None
            # the segment crossing peak time, or the last one, climbs to the peak
            if not peak_reached and (end >= peak_time or crash_time - end < TICK_INTERVAL):
                kind = self.rng.choice(UPWARD_TYPES)
                target = peak
            elif not peak_reached:
                kind = self.rng.choices(SEGMENT_TYPES, weights=CLIMB_WEIGHTS)[0]
                if kind in UPWARD_TYPES:
                    target = self._scheduled_target(kind, price, peak, end - t, peak_time - t)
            else:
                kind = self.rng.choices(SEGMENT_TYPES, weights=UNBIASED_WEIGHTS)[0]

            segment = self._segment(kind, t, end, price, ceiling, target)
            points.extend(segment)
            t, price = end, segment[-1].price
            if not peak_reached and max(p.price for p in segment) >= peak * PEAK_TOLERANCE:
                peak_reached = True

        if not peak_reached and not points:
            # no room for a body before the crash
            points.append(PricePoint.at(t, peak))

        return points

    def _scheduled_target(self, kind: str, price: float, peak: float,
                          seg_len: float, until_peak: float) -> float:
        """Upward target on a geometric path that reaches `peak` by peak time."""
        needed = (peak / price) ** (seg_len / until_peak)
        return price * max(1 + self.rng.uniform(*MAGNITUDES[kind]), needed)

    def _segment(self, kind: str, t0: float, end: float, p0: float,
                 ceiling: float, target: float | None = None) -> list[PricePoint]:
        rng = self.rng
        steps = max(1, round((end - t0) / TICK_INTERVAL))
        times = [t0 + (end - t0) * k / steps for k in range(1, steps)] + [end]
        lo, hi = MAGNITUDES[kind]

        if kind == FLAT:
            prices = [p0 * (1 + rng.uniform(-hi, hi)) for _ in times]

        elif kind == CHOPPY:
            amp = rng.uniform(lo, hi)
            sign = rng.choice((1, -1))
            prices = []
            for _ in times:
                prices.append(p0 * (1 + sign * amp * rng.uniform(0.5, 1.0)))
                sign = -sign

        elif kind in (SPIKE_UP, SPIKE_DOWN):
            if target is None:
                move = rng.uniform(lo, hi)
                target = p0 * (1 + move) if kind == SPIKE_UP else p0 * (1 - move)
            target = min(target, ceiling)
            # sharp move over the first quarter, then a noisy plateau
            hit = max(1, steps // 4)
            prices = []
            for k in range(1, steps + 1):
                if k < hit:
                    prices.append(p0 + (target - p0) * k / hit)
                elif k == hit:
                    prices.append(target)
                else:
                    prices.append(target * (1 + rng.uniform(-PLATEAU_NOISE, PLATEAU_NOISE)))

        else:
            if target is None:
                move = rng.uniform(lo, hi)
                target = p0 * (1 + move) if kind == GRADUAL_CLIMB else p0 * (1 - move)
            target = min(target, ceiling)
            prices = []
            for k in range(1, steps + 1):
                p = p0 + (target - p0) * ease_in_out_cubic(k / steps)
                if k < steps:
                    p *= 1 + rng.uniform(-GRADUAL_NOISE, GRADUAL_NOISE)
                prices.append(p)

        return [
            PricePoint.at(t, max(PRICE_FLOOR, min(ceiling, p)))
            for t, p in zip(times, prices)
        ]
