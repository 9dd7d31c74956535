"""Canonicalization of reported device names.

Census clients report ``<manufacturer> <model>`` built from raw build
properties, so the same vendor shows up as ``asus``, ``Asus`` or ``ASUS``,
some vendors report under an ODM name (``TCT``, ``unknown``), and Alcatel
models embed ``_one_touch_``. ``normalize`` rewrites those into one spelling
per vendor.

Rules run in the order listed in ``PREFIX_RULES``; each sees the output of
the previous one. Every replacement either differs from its pattern only by
case or no longer matches any pattern, which keeps ``normalize`` idempotent.
"""

import re

PREFIX_RULES: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern, re.IGNORECASE), replacement)
    for pattern, replacement in (
        (r"^asus", "ASUS"),
        (r"^acer", "Acer"),
        # Only the bare "lge" vendor token; "LGE..." model names would
        # otherwise be rewritten again on the next pass.
        (r"^lge(?![a-z])", "LG"),
        (r"^huawei", "Huawei"),
        (r"^samsung", "Samsung"),
        (r"^motorola", "Motorola"),
        (r"^oppo", "OPPO"),
        (r"^sharp", "Sharp"),
        (r"^toshiba", "Toshiba"),
        (r"^fujitsu", "Fujitsu"),
        (r"^lenovo", "Lenovo"),
        (r"^kyocera", "Kyocera"),
        (r"^fuhu", "Fuhu"),
        (r"^meizu", "Meizu"),
        (r"^tct( alcatel)?", "Alcatel"),
        (r"^coolpad", "YuLong Coolpad"),
        (r"^nubia nx40x", "ZTE Nubia NX40X"),
        (r"^unknown 8150", "YuLong Coolpad 8150"),
        (r"^unknown lenovo", "Lenovo"),
    )
)

LITERAL_REPLACEMENTS: tuple[tuple[str, str], ...] = (
    ("_one_touch_", " ONE TOUCH "),
)


def normalize(raw_name: str) -> str:
    """Rewrite a reported device name into its canonical vendor spelling.

    Args:
        raw_name: Name as reported by the census client.

    Returns:
        The canonical name.
    """
    name = raw_name
    for pattern, replacement in PREFIX_RULES:
        name = pattern.sub(replacement, name, count=1)
    for token, replacement in LITERAL_REPLACEMENTS:
        name = name.replace(token, replacement)
    return name
