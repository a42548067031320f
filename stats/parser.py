"""
Combination name decomposition

A combination name is the concatenation of its part names, e.g.
"WizardRod 9-60 B" (blade, ratchet, bit) or a Custom line build
"ValkyrieBlast W 3-80 LR" (lockchip, main blade, assist blade, ratchet, bit).
Parts are matched against the beypart_* tables from the right-hand end,
longest names first.
"""
import math
from typing import Optional, List, Dict, Any, Tuple

from .models import PartTables, ParsedCombo, PartInfo


BLADE_LINES = ["Basic", "Unique", "X-Over", "Custom"]

# Parser slot -> display type
PART_TYPE_NAMES = {
    "blade": "Blade",
    "main_blade": "Main Blade (Custom)",
    "assist_blade": "Assist Blade",
    "ratchet": "Ratchet",
    "bit": "Bit",
    "lockchip": "Lockchip",
}

Row = Dict[str, Any]


def wilson_score(wins: int, total: int, z: float = 1.96) -> float:
    """Wilson score interval lower bound, rounded to 3 decimals

    Ranks parts with few matches below parts with many matches at the same
    raw win rate.
    """
    if total <= 0:
        return 0.0
    phat = wins / total
    denom = 1 + z * z / total
    center = phat + z * z / (2 * total)
    spread = z * math.sqrt((phat * (1 - phat) + z * z / (4 * total)) / total)
    return round((center - spread) / denom, 3)


def _by_length(rows: List[Row], *keys: str) -> List[Row]:
    """Sort rows longest name first, using the first non-empty key"""
    def name_of(row: Row) -> str:
        for key in keys:
            if row.get(key):
                return row[key]
        return ""
    return sorted(rows, key=lambda r: len(name_of(r)), reverse=True)


def find_bit(remaining: str, bits: List[Row]) -> Optional[Tuple[str, str]]:
    """Bit suffix -> (matched text, canonical name)

    Shortcuts are tried before full names; the canonical name is the
    shortcut when the bit has one.
    """
    ordered = _by_length(bits, "Shortcut", "Bit")
    for bit in ordered:
        shortcut = bit.get("Shortcut")
        if shortcut and remaining.endswith(shortcut):
            return shortcut, shortcut
    for bit in ordered:
        full_name = bit.get("Bit")
        if full_name and remaining.endswith(full_name):
            return full_name, bit.get("Shortcut") or full_name
    return None


def find_ratchet(remaining: str, ratchets: List[Row]) -> Optional[str]:
    for ratchet in _by_length(ratchets, "Ratchet"):
        name = ratchet.get("Ratchet")
        if name and remaining.endswith(name):
            return name
    return None


def find_blade(remaining: str, blades: List[Row]) -> Optional[str]:
    for blade in blades:
        name = blade.get("Blades")
        if name and remaining == name:
            return name
    return None


def find_lockchip(combo_name: str, lockchips: List[Row]) -> Optional[str]:
    for lockchip in _by_length(lockchips, "Lockchip"):
        name = lockchip.get("Lockchip")
        if name and combo_name.startswith(name):
            return name
    return None


def find_assist_blade(remaining: str, assist_blades: List[Row]) -> Optional[str]:
    for assist in _by_length(assist_blades, "Assist Blade"):
        name = assist.get("Assist Blade")
        if name and remaining.endswith(name):
            return name
    return None


def _strip_suffix(text: str, suffix: str) -> str:
    return text[:len(text) - len(suffix)].strip()


def _parse_standard(combo_name: str, blade_line: str, tables: PartTables) -> Optional[ParsedCombo]:
    bit = find_bit(combo_name, tables.bits)
    if not bit:
        return None
    remaining = _strip_suffix(combo_name, bit[0])

    ratchet = find_ratchet(remaining, tables.ratchets)
    if not ratchet:
        return None
    remaining = _strip_suffix(remaining, ratchet)

    line_blades = [b for b in tables.blades if b.get("Line") == blade_line]
    blade = find_blade(remaining, line_blades)
    if not blade:
        return None

    return ParsedCombo(is_custom=False, blade=blade, ratchet=ratchet, bit=bit[1])


def _parse_custom(combo_name: str, tables: PartTables) -> Optional[ParsedCombo]:
    lockchip = find_lockchip(combo_name, tables.lockchips)
    if not lockchip:
        return None
    remaining = combo_name[len(lockchip):]

    bit = find_bit(remaining, tables.bits)
    if not bit:
        return None
    remaining = _strip_suffix(remaining, bit[0])

    ratchet = find_ratchet(remaining, tables.ratchets)
    if not ratchet:
        return None
    remaining = _strip_suffix(remaining, ratchet)

    assist_blade = find_assist_blade(remaining, tables.assist_blades)
    if not assist_blade:
        return None
    remaining = _strip_suffix(remaining, assist_blade)

    custom_blades = [b for b in tables.blades if b.get("Line") == "Custom"]
    main_blade = find_blade(remaining, custom_blades)
    if not main_blade:
        return None

    return ParsedCombo(
        is_custom=True,
        lockchip=lockchip,
        main_blade=main_blade,
        assist_blade=assist_blade,
        ratchet=ratchet,
        bit=bit[1],
    )


def decompose(combo_name: str, blade_line: Optional[str], tables: PartTables) -> ParsedCombo:
    """Split a combination name into parts

    The recorded blade line is tried first, then every other line. An
    unparseable name yields an empty ParsedCombo.
    """
    if not combo_name or not combo_name.strip():
        return ParsedCombo()

    lines = list(BLADE_LINES)
    if blade_line in lines:
        lines.remove(blade_line)
        lines.insert(0, blade_line)

    for line in lines:
        if line == "Custom":
            parsed = _parse_custom(combo_name, tables)
        else:
            parsed = _parse_standard(combo_name, line, tables)
        if parsed:
            return parsed

    return ParsedCombo()


def combo_type(parsed: ParsedCombo) -> str:
    """Attack / Defense / Stamina / Balance from the bit name, else Unknown"""
    if not parsed.bit:
        return "Unknown"
    bit_name = parsed.bit.lower()
    for role in ("Attack", "Defense", "Stamina", "Balance"):
        if role.lower() in bit_name:
            return role
    return "Unknown"


# ==================== Catalogue lookup ====================

def find_part(part_name: str, tables: PartTables) -> Optional[Tuple[str, Row]]:
    """Catalogue row for a part name -> (display type, row)"""
    candidates = [
        ("Blade", tables.blades, ("Blades",)),
        ("Ratchet", tables.ratchets, ("Ratchet",)),
        ("Bit", tables.bits, ("Bit", "Shortcut")),
        ("Lockchip", tables.lockchips, ("Lockchip",)),
        ("Assist Blade", tables.assist_blades, ("Assist Blade", "Assist Blade Name")),
    ]
    for part_type, rows, keys in candidates:
        for row in rows:
            if any(row.get(key) == part_name for key in keys):
                return part_type, row
    return None


def part_display_info(part_name: str, tables: PartTables) -> PartInfo:
    """Display name, type and stats of a part; Unknown when not catalogued"""
    found = find_part(part_name, tables)
    if not found:
        return PartInfo(display_name=part_name, type="Unknown")

    part_type, row = found
    display_name = part_name
    if part_type == "Bit" and row.get("Bit") and row.get("Shortcut"):
        display_name = f"{row['Bit']} ({row['Shortcut']})"
    elif part_type == "Assist Blade" and row.get("Assist Blade Name") and row.get("Assist Blade"):
        display_name = f"{row['Assist Blade Name']} ({row['Assist Blade']})"

    return PartInfo(
        display_name=display_name,
        type=part_type,
        attack=row.get("Attack") or 0,
        defense=row.get("Defense") or 0,
        stamina=row.get("Stamina") or 0,
        dash=row.get("Dash") or 0,
        burst_res=row.get("Burst Res") or 0,
    )
