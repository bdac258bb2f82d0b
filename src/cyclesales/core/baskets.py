"""
Market basket analysis over synthetic transactions.

The export has no order ids, so a basket is inferred: every line sharing a
customer, cycle and capture date (the record's basket_key) belongs to the
same purchase. Pair statistics are then mined over those baskets.

Scaling limit: pair counting visits every unordered SKU pair of every
basket, O(sum of k^2) for basket sizes k. That is fine for the few items a
synthetic transaction holds, but not for baskets with hundreds of SKUs.
"""

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from functools import cmp_to_key
from itertools import combinations
from statistics import median

from .models import INVALID_SKU, UNKNOWN, CanonicalRecord

DEFAULT_MIN_SUPPORT = 0.001  # 0.1% of baskets


@dataclass(frozen=True)
class Basket:
    basket_key: str
    items: frozenset[str]  # distinct SKUs
    customer_name: str
    cycle_label: str
    capture_date: str | None


@dataclass(frozen=True)
class BasketPair:
    """Association statistics for an unordered SKU pair (item_a < item_b)."""

    item_a: str
    item_b: str
    name_a: str
    name_b: str
    support: float  # share of baskets containing both
    confidence: float  # P(b | a)
    lift: float  # confidence / support(b)
    occurrences: int


@dataclass(frozen=True)
class BasketStats:
    mean_size: float
    median_size: float
    largest: int
    smallest: int
    single_item_baskets: int
    single_item_percentage: float


@dataclass(frozen=True)
class SegmentProduct:
    sku: str
    product_name: str
    frequency: float  # share of the segment's baskets containing the SKU
    exclusivity: float  # share of all baskets with the SKU that belong to the segment


def build_baskets(
    records: Iterable[CanonicalRecord], include_non_sales: bool = False
) -> list[Basket]:
    """
    Group records into baskets by basket_key.

    Sale rows only unless include_non_sales; invalid SKUs are dropped and a
    SKU bought several times in one basket counts once. Baskets keep the
    order in which their keys first appear.
    """
    grouped: dict[str, set[str]] = {}
    first_rows: dict[str, CanonicalRecord] = {}

    for r in records:
        if not include_non_sales and not r.is_sale:
            continue
        if r.sku == INVALID_SKU:
            continue
        if r.basket_key not in grouped:
            grouped[r.basket_key] = set()
            first_rows[r.basket_key] = r
        grouped[r.basket_key].add(r.sku)

    return [
        Basket(
            basket_key=key,
            items=frozenset(items),
            customer_name=first_rows[key].customer_name,
            cycle_label=first_rows[key].cycle_label,
            capture_date=first_rows[key].capture_date,
        )
        for key, items in grouped.items()
    ]


def product_names_by_sku(records: Iterable[CanonicalRecord]) -> dict[str, str]:
    """First product name seen for each valid SKU."""
    names: dict[str, str] = {}
    for r in records:
        if r.sku != INVALID_SKU and r.sku not in names:
            names[r.sku] = r.product_name
    return names


def _by_lift_then_support(a: BasketPair, b: BasketPair) -> float:
    # Lifts within 0.01 of each other are treated as tied
    if abs(b.lift - a.lift) > 0.01:
        return b.lift - a.lift
    return b.support - a.support


def mine_association_rules(
    baskets: Sequence[Basket],
    min_support: float = DEFAULT_MIN_SUPPORT,
    product_names: Mapping[str, str] | None = None,
) -> list[BasketPair]:
    """
    Compute support, confidence and lift for every co-occurring SKU pair.

    support(A,B) = baskets with both / all baskets
    confidence   = support(A,B) / support(A)
    lift         = confidence / support(B)

    Pairs below min_support are dropped. Sorted by lift (descending), with
    near-equal lifts ordered by support.
    """
    total = len(baskets)
    if total == 0:
        return []

    names = product_names or {}

    item_counts: Counter[str] = Counter()
    pair_counts: Counter[tuple[str, str]] = Counter()
    for basket in baskets:
        items = sorted(basket.items)
        item_counts.update(items)
        pair_counts.update(combinations(items, 2))

    pairs = []
    for (item_a, item_b), occurrences in pair_counts.items():
        support_ab = occurrences / total
        if support_ab < min_support:
            continue

        support_a = item_counts[item_a] / total
        support_b = item_counts[item_b] / total
        confidence = support_ab / support_a if support_a > 0 else 0.0
        lift = confidence / support_b if support_b > 0 else 0.0

        pairs.append(
            BasketPair(
                item_a=item_a,
                item_b=item_b,
                name_a=names.get(item_a, UNKNOWN),
                name_b=names.get(item_b, UNKNOWN),
                support=support_ab,
                confidence=confidence,
                lift=lift,
                occurrences=occurrences,
            )
        )

    return sorted(pairs, key=cmp_to_key(_by_lift_then_support))


def _by_lift_then_confidence(a: BasketPair, b: BasketPair) -> float:
    if abs(b.lift - a.lift) > 0.1:
        return b.lift - a.lift
    return b.confidence - a.confidence


def suggest_complementary_products(
    sku: str, pairs: Sequence[BasketPair], top_n: int = 10
) -> list[BasketPair]:
    """
    Products most associated with one SKU.

    Pairs are re-oriented so the queried SKU is always item_a.
    """
    oriented = []
    for p in pairs:
        if p.item_a == sku:
            oriented.append(p)
        elif p.item_b == sku:
            oriented.append(
                replace(p, item_a=p.item_b, item_b=p.item_a, name_a=p.name_b, name_b=p.name_a)
            )

    return sorted(oriented, key=cmp_to_key(_by_lift_then_confidence))[:top_n]


def compute_basket_stats(baskets: Sequence[Basket]) -> BasketStats:
    if not baskets:
        return BasketStats(
            mean_size=0.0,
            median_size=0.0,
            largest=0,
            smallest=0,
            single_item_baskets=0,
            single_item_percentage=0.0,
        )

    sizes = sorted(len(b.items) for b in baskets)
    singles = sum(1 for size in sizes if size == 1)

    return BasketStats(
        mean_size=sum(sizes) / len(sizes),
        median_size=float(median(sizes)),
        largest=sizes[-1],
        smallest=sizes[0],
        single_item_baskets=singles,
        single_item_percentage=singles / len(sizes) * 100,
    )


def find_segment_products(
    baskets: Sequence[Basket],
    client_segments: Mapping[str, str],
    segment: str,
    product_names: Mapping[str, str] | None = None,
) -> list[SegmentProduct]:
    """
    SKUs that characterise one customer segment.

    client_segments maps customer name to segment name. Results are ordered
    by exclusivity (differences under 0.1 count as ties), then frequency.
    """
    in_segment = [b for b in baskets if client_segments.get(b.customer_name) == segment]
    if not in_segment:
        return []

    names = product_names or {}
    segment_counts: Counter[str] = Counter()
    for b in in_segment:
        segment_counts.update(b.items)

    other_counts: Counter[str] = Counter()
    for b in baskets:
        if client_segments.get(b.customer_name) != segment:
            other_counts.update(b.items)

    products = []
    for sku, count in sorted(segment_counts.items()):
        total = count + other_counts[sku]
        products.append(
            SegmentProduct(
                sku=sku,
                product_name=names.get(sku, UNKNOWN),
                frequency=count / len(in_segment),
                exclusivity=count / total if total > 0 else 0.0,
            )
        )

    def by_exclusivity(a: SegmentProduct, b: SegmentProduct) -> float:
        if abs(b.exclusivity - a.exclusivity) > 0.1:
            return b.exclusivity - a.exclusivity
        return b.frequency - a.frequency

    return sorted(products, key=cmp_to_key(by_exclusivity))
