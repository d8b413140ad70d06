"""
Size-break catalog.

A size break selects the ordered set of size labels a product is ordered in,
and therefore how many order-quantity columns its row gets.
"""
from typing import Any, Dict, List, Tuple

SIZE_BREAKS: Dict[str, Tuple[str, ...]] = {
    "1": (
        "M8/W9.5", "M8.5/W10", "M9/W10.5", "M9.5/W11", "M10/W11.5",
        "M10.5/W12", "M11/W12.5", "M11.5/W13", "M12/W13.5", "M12.5/W14",
        "M13/W14.5", "W5/M3.5", "W5.5/M4", "W6/M4.5", "W6.5/M5",
        "W7/M5.5", "W7.5/M6", "W8/M6.5", "W8.5/M7", "W9/M7.5",
    ),
    "2": (
        "M7.5-M8/W9-W9.5", "M8.5-M9/W10-W10.5", "M9.5-M10/W11-W11.5",
        "M10.5-M11/W12-W12.5", "M11.5-M12/W13-W13.5", "M12.5-M13/W14-W14.5",
        "W5-W5.5/M3.5-M4", "W6-W6.5/M4.5-M5", "W7-W7.5/M5.5-M6", "W8-W8.5/M6.5-M7",
    ),
    "3": ("XS", "S", "M", "L", "XL", "XXL"),
    "4": ("One Size",),
}


def normalize_size_break(key: Any) -> str:
    """'3', 3, ' 3 ' and 3.0 all map to '3'."""
    if key is None or isinstance(key, bool):
        return ""
    if isinstance(key, float) and key.is_integer():
        key = int(key)
    return str(key).strip()


def size_labels(key: Any) -> List[str]:
    """Ordered size labels for a size break. Unknown keys give an empty list."""
    return list(SIZE_BREAKS.get(normalize_size_break(key), ()))

