from decimal import Decimal

from apps.common.money import quantize


def rate_for_purity(purity, rate_24k, rate_22k):
    return rate_24k if purity == "24K" else rate_22k


def price_item(*, net_weight, purity, wastage_percentage, making_charges_per_gram, stone_charges, rate_24k, rate_22k, tax_rate):
    rate = rate_for_purity(purity, rate_24k, rate_22k)
    metal_value = net_weight * rate
    wastage_value = metal_value * wastage_percentage / Decimal("100")
    labor_value = making_charges_per_gram * net_weight + stone_charges
    subtotal = metal_value + wastage_value + labor_value
    tax = subtotal * tax_rate / Decimal("100")
    return {
        "base_metal_value": quantize(metal_value),
        "wastage_value": quantize(wastage_value),
        "total_labor_value": quantize(labor_value),
        "tax_amount": quantize(tax),
        "final_amount": quantize(subtotal + tax),
    }


def order_total(item_finals, interest_percentage, additional_charges):
    cart_total = sum(item_finals, Decimal("0"))
    interest = cart_total * interest_percentage / Decimal("100")
    return quantize(cart_total + interest + additional_charges)
