"""
GST rate slabs and the numeric normalisation shared by the pricing code.

Operator input reaches the reconciler as loosely typed form values. Anything that
does not parse as a number is treated as zero instead of raising, so a half typed
field never breaks a line item.
"""

GST_RATES = (0.0, 5.0, 12.0, 18.0, 28.0)


def coerce_number(value) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
    # NaN and infinities are not valid form input either
    if number != number or number in (float("inf"), float("-inf")):
        return 0.0
    return number


def coerce_amount(value) -> float:
    return max(coerce_number(value), 0.0)


def coerce_quantity(value) -> int:
    return max(int(coerce_number(value)), 1)


def is_gst_rate(value) -> bool:
    return coerce_number(value) in GST_RATES


def check_gst_rate(value) -> float:
    rate = coerce_number(value)
    if rate not in GST_RATES:
        allowed = ", ".join(f"{r:g}" for r in GST_RATES)
        raise ValueError(f"GST rate must be one of {allowed}")
    return rate
