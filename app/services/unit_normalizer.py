import logging

logger = logging.getLogger(__name__)

UNIT_CONVERSIONS = {
    ('g', 'kg'): 0.001,
    ('kg', 'g'): 1000,
    ('ml', 'l'): 0.001,
    ('l', 'ml'): 1000,
}

def _canonical_unit(unit: str) -> str:
    return (unit or '').strip().lower()

def normalize_quantity(quantity: float, from_unit: str, to_unit: str) -> float:
    """
    Convert quantity from from_unit to to_unit.

    Only g<->kg and ml<->l are known. Any other differing pair is returned
    unconverted, so a recipe line in an unrelated unit is costed as if it
    were already in the ingredient's unit.
    """
    source = _canonical_unit(from_unit)
    target = _canonical_unit(to_unit)

    if source == target:
        return quantity

    factor = UNIT_CONVERSIONS.get((source, target))
    if factor is None:
        logger.debug(f"No conversion from '{from_unit}' to '{to_unit}', using quantity as is")
        return quantity

    return quantity * factor
