"""Static brand-alias dictionary.

Maps a canonical brand keyword to the phrases shoppers use for it, so that
colloquial queries ("omo", "unga", "chai") reach full product names.
"""
from typing import Dict, List

BRAND_ALIASES: Dict[str, List[str]] = {
    # Sugar
    "kabras": ["kabras sugar", "sugar"],
    "mumias": ["mumias sugar", "sugar"],
    "sony": ["sony sugar", "sugar"],
    "chemelil": ["chemelil sugar", "sugar"],

    # Flour
    "exe": ["exe flour", "flour", "unga"],
    "hostess": ["hostess flour", "flour", "unga"],
    "pembe": ["pembe flour", "flour", "unga"],
    "jogoo": ["jogoo flour", "flour", "unga"],

    # Cooking oil
    "fresh fri": ["fresh fri oil", "cooking oil", "oil"],
    "elianto": ["elianto oil", "cooking oil", "oil"],
    "postman": ["postman oil", "cooking oil", "oil"],
    "kimbo": ["kimbo oil", "cooking oil", "oil"],
    "rina": ["rina oil", "cooking oil", "oil"],

    # Detergent
    "omo": ["omo detergent", "washing powder", "soap"],
    "ariel": ["ariel detergent", "washing powder", "soap"],
    "persil": ["persil detergent", "washing powder", "soap"],
    "toss": ["toss detergent", "washing powder", "soap"],

    # Personal care
    "colgate": ["colgate toothpaste", "toothpaste", "dental"],
    "close up": ["close up toothpaste", "toothpaste", "dental"],
    "aquafresh": ["aquafresh toothpaste", "toothpaste", "dental"],

    # Beverages
    "coca cola": ["coca cola", "coke", "soda", "soft drink"],
    "fanta": ["fanta", "orange", "soda", "soft drink"],
    "sprite": ["sprite", "lemon", "soda", "soft drink"],
    "pepsi": ["pepsi", "cola", "soda", "soft drink"],

    # Dairy
    "brookside": ["brookside milk", "milk", "dairy"],
    "tuzo": ["tuzo milk", "milk", "dairy"],
    "fresha": ["fresha milk", "milk", "dairy"],
    "new kcc": ["new kcc milk", "milk", "dairy"],

    # Tea
    "ketepa": ["ketepa tea", "tea", "chai"],
    "brookbond": ["brookbond tea", "tea", "chai"],
    "lipton": ["lipton tea", "tea", "chai"],

    # Water
    "dasani": ["dasani water", "water", "mineral water"],
    "keringet": ["keringet water", "water", "mineral water"],
    "aquafina": ["aquafina water", "water", "mineral water"],

    # Phones
    "samsung": ["samsung", "phone", "smartphone", "electronics"],
    "tecno": ["tecno", "phone", "smartphone", "electronics"],
    "infinix": ["infinix", "phone", "smartphone", "electronics"],
    "oppo": ["oppo", "phone", "smartphone", "electronics"],
    "huawei": ["huawei", "phone", "smartphone", "electronics"],

    # Bread
    "mini": ["mini bread", "bread", "bakery"],
    "festive": ["festive bread", "bread", "bakery"],
    "mothers choice": ["mothers choice bread", "bread", "bakery"],

    # Tissue
    "softcare": ["softcare tissue", "toilet paper", "tissue"],
    "rose": ["rose tissue", "toilet paper", "tissue"],
    "gentle care": ["gentle care tissue", "toilet paper", "tissue"],
}


def brands_in(text: str) -> List[str]:
    """Return brand keys whose canonical form or any variant occurs in text.

    Args:
        text: Already-normalized text (see indexer.normalize_text)

    Returns:
        Matching brand keys, in dictionary order
    """
    if not text:
        return []

    matches = []
    for brand, variants in BRAND_ALIASES.items():
        if brand in text or any(variant in text for variant in variants):
            matches.append(brand)

    return matches
