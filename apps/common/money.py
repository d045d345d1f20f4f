from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
UNIT = Decimal("1")
EPSILON = Decimal("0.01")


def to_decimal(value):
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value or 0))


def quantize(amount):
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def round_units(amount):
    return to_decimal(amount).quantize(UNIT, rounding=ROUND_HALF_UP)


def format_inr(amount):
    """Indian digit grouping, e.g. 125000 -> 1,25,000."""
    value = quantize(amount)
    sign = "-" if value < 0 else ""
    whole, _, cents = f"{abs(value):.2f}".partition(".")
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])
    if cents == "00":
        return f"{sign}{whole}"
    return f"{sign}{whole}.{cents}"
