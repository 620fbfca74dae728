import math
import re
from typing import Dict, List, Optional, Tuple

RGB = Tuple[int, int, int]

# Fixed palette used to name detected and catalog colors
NAMED_COLORS: List[Tuple[str, RGB]] = [
    ("black", (0, 0, 0)),
    ("white", (255, 255, 255)),
    ("grey", (128, 128, 128)),
    ("charcoal", (54, 69, 79)),
    ("slate", (112, 128, 144)),
    ("red", (220, 20, 30)),
    ("blue", (30, 80, 220)),
    ("navy", (0, 0, 128)),
    ("green", (0, 128, 0)),
    ("yellow", (255, 220, 0)),
    ("orange", (255, 140, 0)),
    ("pink", (255, 170, 190)),
    ("purple", (128, 0, 128)),
    ("brown", (120, 72, 40)),
    ("beige", (245, 240, 220)),
    ("cream", (255, 253, 208)),
    ("ivory", (255, 255, 240)),
    ("khaki", (195, 176, 145)),
    ("olive", (128, 128, 0)),
    ("burgundy", (128, 0, 32)),
    ("maroon", (128, 0, 0)),
    ("camel", (193, 154, 107)),
    ("rust", (183, 65, 14)),
    ("teal", (0, 128, 128)),
    ("emerald", (80, 200, 120)),
    ("lavender", (200, 185, 235)),
    ("coral", (255, 127, 80)),
    ("tan", (210, 180, 140)),
    ("mustard", (211, 166, 60)),
    ("terracotta", (201, 101, 65)),
    ("plum", (131, 98, 131)),
    ("fuchsia", (227, 0, 126)),
    ("lime", (160, 230, 20)),
]

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def parse_hex(value: Optional[str]) -> Optional[RGB]:
    if not value:
        return None
    m = _HEX_RE.match(str(value).strip())
    if not m:
        return None
    digits = m.group(1)
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def rgb_to_hex(rgb: RGB) -> str:
    r, g, b = (max(0, min(255, int(round(c)))) for c in rgb)
    return f"#{r:02x}{g:02x}{b:02x}"


def rgb_distance(a: RGB, b: RGB) -> float:
    return math.sqrt(sum((x - y) ** 2 for x, y in zip(a, b)))


def nearest_named_color(rgb: RGB) -> Tuple[str, float]:
    """Nearest palette entry by Euclidean distance in RGB space; ties keep palette order."""
    best_name, best_dist = NAMED_COLORS[0][0], float("inf")
    for name, ref in NAMED_COLORS:
        d = rgb_distance(rgb, ref)
        if d < best_dist:
            best_name, best_dist = name, d
    return best_name, best_dist


def normalize_color_name(name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    c = " ".join(str(name).strip().lower().split())
    if c in ("", "null", "undefined", "none", "unknown"):
        return None
    return c.replace("gray", "grey")


# Ordered family rules: the first keyword contained in the color name decides
COLOR_FAMILY_RULES: List[Tuple[str, str]] = [
    ("neon", "loud"),
    ("hot pink", "loud"),
    ("electric", "loud"),
    ("lime", "loud"),
    ("fuchsia", "loud"),
    ("navy", "cool"),
    ("icy", "cool"),
    ("cobalt", "cool"),
    ("teal", "cool"),
    ("emerald", "cool"),
    ("lavender", "cool"),
    ("violet", "cool"),
    ("indigo", "cool"),
    ("slate", "cool"),
    ("blue", "cool"),
    ("charcoal", "neutral"),
    ("black", "neutral"),
    ("white", "neutral"),
    ("grey", "neutral"),
    ("cream", "neutral"),
    ("ivory", "neutral"),
    ("beige", "neutral"),
    ("tan", "neutral"),
    ("taupe", "neutral"),
    ("camel", "warm"),
    ("brown", "warm"),
    ("rust", "warm"),
    ("terracotta", "warm"),
    ("mustard", "warm"),
    ("olive", "warm"),
    ("khaki", "warm"),
    ("orange", "warm"),
    ("coral", "warm"),
    ("peach", "warm"),
    ("maroon", "warm"),
    ("burgundy", "warm"),
    ("wine", "warm"),
    ("plum", "warm"),
    ("gold", "warm"),
    ("yellow", "warm"),
    ("red", "warm"),
    ("purple", "cool"),
    ("pink", "cool"),
    ("green", "cool"),
]


def color_family(name: Optional[str]) -> str:
    c = normalize_color_name(name)
    if not c:
        return "unknown"
    for keyword, family in COLOR_FAMILY_RULES:
        if keyword in c:
            return family
    return "unknown"


# Names that count as the same color when matching best/avoid lists
COLOR_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "burgundy": ("plum", "wine", "maroon"),
    "plum": ("burgundy", "wine", "maroon"),
    "wine": ("burgundy", "plum", "maroon"),
    "maroon": ("burgundy", "wine"),
    "navy": ("cobalt", "midnight"),
    "olive": ("khaki", "army green"),
    "grey": ("charcoal", "slate"),
    "cream": ("ivory", "off white"),
    "ivory": ("cream", "off white"),
}


def _words(name: str) -> Tuple[str, ...]:
    return tuple(re.findall(r"[a-z]+", name))


def _has_phrase(words: Tuple[str, ...], phrase: Tuple[str, ...]) -> bool:
    n = len(phrase)
    return n > 0 and any(words[i:i + n] == phrase for i in range(len(words) - n + 1))


def names_match(garment: str, listed: str) -> bool:
    """Whole-word match, so "dark navy" matches "navy" but "tan" never matches "titanium"."""
    g = normalize_color_name(garment)
    c = normalize_color_name(listed)
    if not g or not c:
        return False
    gw, cw = _words(g), _words(c)
    if _has_phrase(gw, cw) or _has_phrase(cw, gw):
        return True
    return any(_has_phrase(gw, _words(s)) for s in COLOR_SYNONYMS.get(c, ()))


SEASON_UNDERTONE = {"spring": "warm", "autumn": "warm", "summer": "cool", "winter": "cool"}

# Four-season palette, tiered; the first tier is the safest suggestion
SEASON_PALETTES: Dict[str, Dict[str, List[str]]] = {
    "spring": {
        "neutrals": ["warm ivory", "cream", "light camel"],
        "accents": ["coral", "peach", "warm rose"],
        "brights": ["warm yellow", "bright aqua", "light turquoise"],
        "softs": ["mint", "soft peach", "buttercream"],
    },
    "summer": {
        "neutrals": ["cool ivory", "soft grey", "rose beige"],
        "accents": ["dusty rose", "mauve", "lavender"],
        "brights": ["periwinkle", "powder blue", "cool aqua"],
        "softs": ["blue grey", "misty blue", "soft lilac"],
    },
    "autumn": {
        "neutrals": ["camel", "warm beige", "caramel"],
        "accents": ["rust", "terracotta", "mustard"],
        "brights": ["pumpkin", "moss green", "teal"],
        "softs": ["sage", "dusty olive", "clay"],
    },
    "winter": {
        "neutrals": ["snow white", "cool black", "charcoal"],
        "accents": ["fuchsia", "berry", "royal purple"],
        "brights": ["true red", "sapphire blue", "emerald"],
        "softs": ["icy lavender", "ice pink", "frost blue"],
    },
}

SEASON_RATIONALE = {
    "spring": "Spring palettes are warm, light and clear.",
    "summer": "Summer palettes are cool, soft and muted.",
    "autumn": "Autumn palettes are warm, deep and muted.",
    "winter": "Winter palettes are cool, deep and high-contrast.",
}

# Which families suit a season, best first
SEASON_FAMILIES = {
    "spring": ("warm", "neutral"),
    "summer": ("cool", "neutral"),
    "autumn": ("warm", "neutral"),
    "winter": ("cool", "neutral", "loud"),
}
