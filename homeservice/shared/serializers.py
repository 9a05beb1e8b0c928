"""Response shapes shared by the service catalogue endpoints (provider, search, admin, categories)"""

from typing import Optional

from ..models import Service, User


def serialize_provider_summary(provider: Optional[User]) -> Optional[dict]:
    if not provider:
        return None
    profile = provider.provider_profile
    business = (profile.business_info if profile else None) or {}
    address = ((profile.location_info if profile else None) or {}).get("primaryAddress") or {}
    return {
        "id": provider.id,
        "name": provider.full_name,
        "businessName": business.get("businessName") or provider.full_name,
        "avatar": provider.avatar,
        "rating": {
            "average": profile.rating_average if profile else 0,
            "count": profile.rating_count if profile else 0,
        },
        "verificationStatus": profile.verification_status if profile else None,
        "city": address.get("city"),
        "state": address.get("state"),
    }


def serialize_service(service: Service, include_provider: bool = False) -> dict:
    data = {
        "id": service.id,
        "providerId": service.provider_id,
        "name": service.name,
        "category": service.category,
        "subcategory": service.subcategory,
        "description": service.description,
        "shortDescription": service.short_description,
        "price": {
            "amount": service.price_amount,
            "currency": service.price_currency,
            "type": service.price_type,
        },
        "duration": service.duration,
        "images": service.images,
        "tags": service.tags,
        "addOns": service.add_ons,
        "location": service.location,
        "rating": {"average": service.rating_average, "count": service.rating_count},
        "searchMetadata": {
            "searchCount": service.search_count,
            "clickCount": service.click_count,
            "bookingCount": service.booking_count,
            "popularityScore": service.popularity_score,
            "lastSearched": service.last_searched,
        },
        "isActive": service.is_active,
        "isFeatured": service.is_featured,
        "isPopular": service.is_popular,
        "status": service.status,
        "createdAt": service.created_at,
        "updatedAt": service.updated_at,
    }
    if include_provider:
        data["provider"] = serialize_provider_summary(service.provider)
    return data
