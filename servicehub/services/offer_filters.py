"""
In-memory filtering, sorting and totals over lists that were already fetched
in full from the store.
"""

from typing import List, Sequence

from servicehub.models.schemas import (
    ClientStats,
    Offer,
    OfferStats,
    ProviderOfferView,
    ProviderStats,
    ServiceRequest,
)


def filter_by_provider(offers: Sequence[Offer], provider: str = "") -> List[Offer]:
    """Keep offers whose provider name contains ``provider``, ignoring case."""
    if not provider:
        return list(offers)
    needle = provider.lower()
    return [offer for offer in offers if offer.provider_name and needle in offer.provider_name.lower()]


def sort_offers(offers: Sequence[Offer], price_sort: str = "none", delivery_sort: str = "none") -> List[Offer]:
    """
    Order offers by one key only. A price sort wins over a delivery sort;
    the delivery sort applies only when no price sort is chosen. With
    neither, the fetched order is kept.
    """
    if price_sort in ("low", "high"):
        return sorted(offers, key=lambda o: o.price, reverse=price_sort == "high")
    if delivery_sort in ("fast", "slow"):
        return sorted(offers, key=lambda o: o.delivery_time, reverse=delivery_sort == "slow")
    return list(offers)


def filter_and_sort(
    offers: Sequence[Offer],
    provider: str = "",
    price_sort: str = "none",
    delivery_sort: str = "none",
) -> List[Offer]:
    return sort_offers(filter_by_provider(offers, provider), price_sort, delivery_sort)


def client_stats(requests: Sequence[ServiceRequest]) -> ClientStats:
    return ClientStats(
        total_requests=len(requests),
        open_requests=sum(1 for r in requests if r.status == "open"),
    )


def offer_stats(offers: Sequence[Offer]) -> OfferStats:
    average = sum(o.price for o in offers) / len(offers) if offers else 0.0
    return OfferStats(total_offers=len(offers), average_price=round(average, 2))


def provider_stats(open_requests: Sequence[ServiceRequest], offers: Sequence[ProviderOfferView]) -> ProviderStats:
    accepted = [o for o in offers if o.status == "accepted"]
    return ProviderStats(
        open_requests=len(open_requests),
        my_offers=len(offers),
        pending_offers=sum(1 for o in offers if o.status == "pending"),
        accepted_offers=len(accepted),
        total_revenue=round(sum(o.price for o in accepted), 2),
    )
