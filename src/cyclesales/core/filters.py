"""
Record filters applied before any analysis runs.

Empty selections mean "no constraint". The include_non_sales flag travels
with the filters but is consumed by the analyses, not by the predicate.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from .models import CanonicalRecord, DeliveryCategory


@dataclass(frozen=True)
class RecordFilters:
    management_codes: tuple[str, ...] = ()
    sectors: tuple[str, ...] = ()
    cycles: tuple[str, ...] = ()
    channels: tuple[str, ...] = ()
    delivery_categories: tuple[DeliveryCategory, ...] = ()
    customer_search: str = ""
    product_search: str = ""
    include_non_sales: bool = False

    def matches(self, record: CanonicalRecord) -> bool:
        if self.management_codes and record.management_code not in self.management_codes:
            return False
        if self.sectors and record.sector not in self.sectors:
            return False
        if self.cycles and record.cycle_label not in self.cycles:
            return False
        if self.channels and record.channel not in self.channels:
            return False
        if (
            self.delivery_categories
            and record.delivery_category not in self.delivery_categories
        ):
            return False

        if self.customer_search:
            if self.customer_search.upper() not in record.customer_name.upper():
                return False

        if self.product_search:
            search = self.product_search
            if (
                search.upper() not in record.product_name.upper()
                and search not in record.sku
            ):
                return False

        return True


def apply_filters(
    records: Iterable[CanonicalRecord], filters: RecordFilters
) -> tuple[CanonicalRecord, ...]:
    return tuple(r for r in records if filters.matches(r))


def available_values(records: Iterable[CanonicalRecord]) -> dict[str, list[str]]:
    """Distinct values for each selectable filter, sorted for display."""
    management_codes, sectors, channels = set(), set(), set()
    cycles: dict[str, int] = {}
    for r in records:
        management_codes.add(r.management_code)
        sectors.add(r.sector)
        channels.add(r.channel)
        cycles.setdefault(r.cycle_label, r.cycle_index)

    return {
        "management_codes": sorted(management_codes),
        "sectors": sorted(sectors),
        # Cycles in calendar order rather than text order
        "cycles": sorted(cycles, key=lambda label: (cycles[label], label)),
        "channels": sorted(channels),
    }
