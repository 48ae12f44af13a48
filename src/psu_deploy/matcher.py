"""Inventory Target Matcher - turn raw SNMP library rows into PSU candidates.

A discovery against ENTITY-STATE-MIB returns admin state, oper state, alarm
and usage rows for every physical entity: fans, PSUs, their sub-sensors.
Only the operational-state row of each power supply becomes a sensor.

Filtering (all must hold):
1. OID lies in the entStateOper branch
2. Description mentions "PowerSupply" / "Power Supply"
3. Description mentions neither "Fan" nor "Speed"
4. Final OID segment is a main entry per the vendor rule

Entry numbering differs per vendor, so the main-entry test, label patterns
and ordering patterns come from VENDOR_RULES. Supporting a new vendor means
adding a rule, not editing the filter.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from psu_deploy.models import InventoryTarget, PsuCandidate, Vendor

logger = logging.getLogger(__name__)

# ENTITY-STATE-MIB::entStateOper = 1.3.6.1.2.1.131.1.1.1.3
ENT_STATE_OPER_INFIX = "131.1.1.1.3."

PSU_KEYWORD = re.compile(r"Power ?Supply")
FAN_KEYWORD = re.compile(r"Fan|Speed")

COMPACT_LABEL = re.compile(r"PowerSupply\d+")
VERBOSE_LABEL = re.compile(r"Power Supply #\d+(?: \([^)]*\))?")
COMPACT_ORDER = re.compile(r"PowerSupply(\d+)$")
VERBOSE_ORDER = re.compile(r"#(\d+)")

FALLBACK_LABEL = "PowerSupply"


def thousand_aligned(segment: str) -> bool:
    """Arista entity indexes: 100601000 is PSU 1 itself, 100601110 a sub-sensor."""
    return re.fullmatch(r"\d+000", segment) is not None


def short_index(segment: str) -> bool:
    """Flat numbering (Palo Alto): PSUs are entities 1..99."""
    return re.fullmatch(r"\d{1,2}", segment) is not None


def any_main_entry(segment: str) -> bool:
    return thousand_aligned(segment) or short_index(segment)


@dataclass(frozen=True)
class VendorRule:
    """How one vendor numbers and names its PSU entities."""

    is_main_entry: Callable[[str], bool]
    label_patterns: tuple[re.Pattern[str], ...] = (COMPACT_LABEL, VERBOSE_LABEL)
    order_patterns: tuple[re.Pattern[str], ...] = (COMPACT_ORDER, VERBOSE_ORDER)

    def extract_label(self, description: str) -> str:
        for pattern in self.label_patterns:
            m = pattern.search(description)
            if m:
                return m.group(0)
        return FALLBACK_LABEL

    def sort_key(self, label: str) -> int:
        for pattern in self.order_patterns:
            m = pattern.search(label)
            if m:
                return int(m.group(1))
        return 0


DEFAULT_RULE = VendorRule(is_main_entry=any_main_entry)

VENDOR_RULES: dict[Vendor, VendorRule] = {
    Vendor.ARISTA: VendorRule(is_main_entry=thousand_aligned),
    Vendor.PALO_ALTO: VendorRule(is_main_entry=short_index),
    Vendor.UNKNOWN: DEFAULT_RULE,
}


def rule_for(vendor: Vendor | None) -> VendorRule:
    return VENDOR_RULES.get(vendor or Vendor.UNKNOWN, DEFAULT_RULE)


def is_psu_target(target: InventoryTarget, rule: VendorRule = DEFAULT_RULE) -> bool:
    """Apply the four filtering predicates to one target."""
    if ENT_STATE_OPER_INFIX not in target.value:
        return False

    description = target.description
    if not PSU_KEYWORD.search(description):
        return False
    if FAN_KEYWORD.search(description):
        return False

    final_segment = target.value.rstrip(".").rsplit(".", 1)[-1]
    return rule.is_main_entry(final_segment)


def match(
    targets: Iterable[InventoryTarget], vendor: Vendor | None = Vendor.UNKNOWN
) -> list[PsuCandidate]:
    """Filter and order discovery rows into PSU candidates.

    Args:
        targets: Raw discovery rows in the order PRTG returned them
        vendor: Vendor whose numbering rule applies (Unknown accepts both schemes)

    Returns:
        Candidates sorted by unit index; equal keys keep discovery order
    """
    rule = rule_for(vendor)
    candidates = []
    for target in targets:
        if not is_psu_target(target, rule):
            continue
        label = rule.extract_label(target.description)
        candidates.append(PsuCandidate(label=label, sort_key=rule.sort_key(label), target=target))

    # sorted() is stable, so ties stay in discovery order
    candidates = sorted(candidates, key=lambda c: c.sort_key)

    duplicates = [label for label, n in Counter(c.label for c in candidates).items() if n > 1]
    if duplicates:
        logger.warning(f"Duplicate PSU labels in discovery data: {', '.join(duplicates)}")

    return candidates
