def ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0 when the denominator is not positive."""
    if denominator > 0:
        return numerator / denominator
    return 0


def percentage(numerator: float, denominator: float) -> float:
    return ratio(numerator, denominator) * 100


def mean(values) -> float:
    values = list(values)
    return ratio(sum(values), len(values))


def ema(previous: float, sample: float, weight: float = 0.9) -> float:
    """Exponential moving average; ``weight`` applies to the previous value."""
    return previous * weight + sample * (1 - weight)
