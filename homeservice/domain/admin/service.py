"""Admin service - provider verification, service moderation and user management"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache import invalidate_category_cache
from ...constants import (
    ACCOUNT_ACTIVE,
    ACCOUNT_DEACTIVATED,
    ACCOUNT_SUSPENDED,
    ADMIN_SETTABLE_ACCOUNT_STATUSES,
    ASSIGNABLE_SERVICE_STATUSES,
    DEFAULT_CURRENCY,
    ROLE_ADMIN,
    ROLE_CUSTOMER,
    ROLE_PROVIDER,
    SERVICE_ACTIVE,
    SERVICE_INACTIVE,
    SERVICE_PENDING_REVIEW,
    SERVICE_REJECTED,
    USER_ROLES,
    VERIFICATION_APPROVED,
    VERIFICATION_PENDING,
    VERIFICATION_REJECTED,
    normalize_category,
)
from ...email_service import (
    EmailDeliveryError,
    send_provider_approved_email,
    send_provider_rejected_email,
)
from ...models import ProviderProfile, Service, User
from ...security_utils import log_security_event, mask_email
from ...shared.serializers import serialize_service
from ...shared.validators import paginate, pagination_meta
from ..auth.service import serialize_provider_profile, serialize_user
from ..provider_services.service import inherited_location
from .repository import AdminRepository
from .schemas import ApproveProviderRequest, BatchServiceAction, RejectProviderRequest

logger = logging.getLogger(__name__)

RECENT_SIGNUP_DAYS = 30


def serialize_provider_for_review(user: User) -> dict:
    return {
        **serialize_user(user),
        "providerProfile": serialize_provider_profile(user.provider_profile),
    }


def _percentage(part: int, total: int) -> int:
    return round(part / total * 100) if total else 0


class AdminService:
    """Service layer for the admin back office"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AdminRepository()

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # ========================================================================
    # PROVIDER VERIFICATION
    # ========================================================================

    def _provider_or_404(self, provider_id: int) -> User:
        provider = self.repo.get_provider(self.db, provider_id)
        if not provider or not provider.provider_profile:
            raise HTTPException(status_code=404, detail="Provider not found")
        return provider

    def _list_providers(self, status: Optional[str], search: Optional[str], page: int, limit: int) -> dict:
        query = self.repo.provider_profiles_query(self.db, status, search)
        profiles, total = paginate(query, page, limit)
        return {
            "providers": [serialize_provider_for_review(p.user) for p in profiles],
            "pagination": pagination_meta(page, limit, total, extended=True),
        }

    def pending_providers(self, search: Optional[str], page: int, limit: int) -> dict:
        return self._list_providers(VERIFICATION_PENDING, search, page, limit)

    def provider_stats(self) -> dict:
        counts = self.repo.verification_counts(self.db)
        total = sum(counts.values())
        approved = counts.get(VERIFICATION_APPROVED, 0)
        return {
            "stats": {
                "pending": counts.get(VERIFICATION_PENDING, 0),
                "approved": approved,
                "rejected": counts.get(VERIFICATION_REJECTED, 0),
                "total": total,
                "approvalRate": _percentage(approved, total),
            }
        }

    def get_provider(self, provider_id: int) -> dict:
        return {"provider": serialize_provider_for_review(self._provider_or_404(provider_id))}

    def _publish_declared_services(self, provider: User) -> int:
        """Create catalogue rows for the services declared at registration, skipping existing names"""
        profile = provider.provider_profile
        existing = self.repo.service_names(self.db, provider.id)
        location = inherited_location(profile)
        created = 0

        for declared in profile.profile_services or []:
            name = declared.get("name")
            if not name or name in existing:
                logger.info(f"⚠️ Service already exists for provider {provider.id}: {name}")
                continue

            price = declared.get("price") or {}
            description = declared.get("description") or ""
            self.db.add(
                Service(
                    provider_id=provider.id,
                    name=name,
                    category=normalize_category(declared.get("category")) or declared.get("category"),
                    subcategory=declared.get("subcategory"),
                    description=description or None,
                    short_description=description[:100] or None,
                    price_amount=price.get("amount", 0),
                    price_currency=price.get("currency") or DEFAULT_CURRENCY,
                    price_type=price.get("type") or "fixed",
                    duration=declared.get("duration") or 60,
                    tags=list(declared.get("tags") or []),
                    images=list(declared.get("images") or []),
                    add_ons=list(declared.get("addOns") or []),
                    location=location,
                    is_active=declared.get("isActive", True) is not False,
                    status=SERVICE_ACTIVE,
                )
            )
            existing.add(name)
            created += 1
        return created

    async def approve_provider(self, provider_id: int, admin: User, data: ApproveProviderRequest) -> dict:
        provider = self._provider_or_404(provider_id)
        profile: ProviderProfile = provider.provider_profile
        if profile.verification_status == VERIFICATION_APPROVED:
            raise HTTPException(status_code=400, detail="Provider is already approved")

        profile.verification_status = VERIFICATION_APPROVED
        profile.verification_notes = data.notes or "Provider approved by admin"
        profile.rejection_reason = None
        profile.verified_at = datetime.utcnow()
        profile.verified_by = admin.id
        provider.account_status = ACCOUNT_ACTIVE

        created = self._publish_declared_services(provider)
        self._commit()
        self.db.refresh(provider)
        invalidate_category_cache()

        logger.info(f"✅ Provider {provider.id} approved by admin {admin.id}, {created} services published")
        log_security_event(
            "provider_approved", str(provider.id), details={"admin_id": admin.id, "services_created": created}
        )

        try:
            await send_provider_approved_email(provider.email, provider.first_name, data.notes)
        except EmailDeliveryError as e:
            logger.error(f"❌ Approval email to {mask_email(provider.email)} failed: {e}")

        return {
            "message": "Provider approved successfully",
            "servicesCreated": created,
            "provider": serialize_provider_for_review(provider),
        }

    async def reject_provider(self, provider_id: int, admin: User, data: RejectProviderRequest) -> dict:
        provider = self._provider_or_404(provider_id)
        profile: ProviderProfile = provider.provider_profile
        if profile.verification_status == VERIFICATION_REJECTED:
            raise HTTPException(status_code=400, detail="Provider is already rejected")

        profile.verification_status = VERIFICATION_REJECTED
        profile.rejection_reason = data.reason
        profile.verification_notes = data.notes or ""
        provider.account_status = ACCOUNT_SUSPENDED
        self._commit()
        self.db.refresh(provider)

        logger.info(f"🚫 Provider {provider.id} rejected by admin {admin.id}: {data.reason}")
        log_security_event("provider_rejected", str(provider.id), details={"admin_id": admin.id, "reason": data.reason})

        try:
            await send_provider_rejected_email(provider.email, provider.first_name, data.reason, data.notes)
        except EmailDeliveryError as e:
            logger.error(f"❌ Rejection email to {mask_email(provider.email)} failed: {e}")

        return {"message": "Provider rejected successfully", "provider": serialize_provider_for_review(provider)}

    def providers_with_services(self, status: Optional[str], search: Optional[str], page: int, limit: int) -> dict:
        query = self.repo.provider_profiles_query(self.db, status, search)
        profiles, total = paginate(query, page, limit)
        services = self.repo.services_for_providers(self.db, [p.user_id for p in profiles])

        providers = []
        for profile in profiles:
            data = serialize_provider_for_review(profile.user)
            data["services"] = [serialize_service(s) for s in services if s.provider_id == profile.user_id]
            providers.append(data)
        return {"providers": providers, "pagination": pagination_meta(page, limit, total)}

    def provider_services(self, provider_id: int) -> dict:
        provider = self._provider_or_404(provider_id)
        services = self.repo.services_for_providers(self.db, [provider.id])
        return {
            "provider": serialize_provider_for_review(provider),
            "services": [serialize_service(s) for s in services],
        }

    # ========================================================================
    # SERVICE MODERATION
    # ========================================================================

    def list_services(
        self,
        search: Optional[str],
        category: Optional[str],
        status: Optional[str],
        provider_id: Optional[int],
        sort_by: str,
        order: str,
        page: int,
        limit: int,
    ) -> dict:
        if category:
            category = normalize_category(category) or category
        query = self.repo.services_query(self.db, search, category, status, provider_id, sort_by, order)
        services, total = paginate(query, page, limit)
        return {
            "services": [serialize_service(s, include_provider=True) for s in services],
            "pagination": pagination_meta(page, limit, total, extended=True),
        }

    def pending_services(self, page: int, limit: int) -> dict:
        return self.list_services(None, None, SERVICE_PENDING_REVIEW, None, "createdAt", "desc", page, limit)

    def service_stats(self) -> dict:
        counts = self.repo.service_status_counts(self.db)
        total = sum(counts.values())
        active = counts.get(SERVICE_ACTIVE, 0)
        return {
            "stats": {
                "total": total,
                "active": active,
                "inactive": counts.get("inactive", 0),
                "pendingReview": counts.get(SERVICE_PENDING_REVIEW, 0),
                "draft": counts.get("draft", 0),
                "approvalRate": _percentage(active, total),
            },
            "categoryStats": [
                {"category": row.category, "count": row.count, "avgPrice": round(row.avg_price or 0, 2)}
                for row in self.repo.service_category_stats(self.db)
            ],
            "recentServices": [serialize_service(s) for s in self.repo.recent_services(self.db)],
        }

    def update_service_status(self, service_id: int, admin: User, status: str, notes: Optional[str] = None) -> dict:
        if status not in ASSIGNABLE_SERVICE_STATUSES:
            raise HTTPException(status_code=400, detail="Invalid status")

        service = self.repo.get_service(self.db, service_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")

        service.status = status
        service.is_active = status == SERVICE_ACTIVE
        self._commit()
        self.db.refresh(service)
        invalidate_category_cache()

        logger.info(f"📝 Service {service.id} status set to {status} by admin {admin.id}" + (f": {notes}" if notes else ""))
        message = "Service approved successfully" if status == SERVICE_ACTIVE else "Service status updated successfully"
        return {"message": message, "service": serialize_service(service)}

    def delete_service(self, service_id: int, admin: User) -> dict:
        service = self.repo.get_service(self.db, service_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")

        if self.repo.count_service_bookings(self.db, service.id):
            # bookings keep pointing at the row, so it is only taken off the catalogue
            service.status = SERVICE_INACTIVE
            service.is_active = False
            self._commit()
            invalidate_category_cache()
            logger.info(f"🗃️ Service {service_id} has bookings; deactivated by admin {admin.id}")
            return {"message": "Service has bookings and was deactivated instead", "softDeleted": True}

        self.db.delete(service)
        self._commit()
        invalidate_category_cache()

        logger.info(f"🗑️ Service {service_id} deleted by admin {admin.id}")
        return {"message": "Service deleted successfully", "softDeleted": False}

    def batch_service_action(self, data: BatchServiceAction, admin: User) -> dict:
        approve = data.action == "approve"
        new_status = SERVICE_ACTIVE if approve else SERVICE_REJECTED

        services = self.repo.pending_services_by_ids(self.db, data.serviceIds)
        for service in services:
            service.status = new_status
            service.is_active = approve
        self._commit()
        if services:
            invalidate_category_cache()

        verb = "approved" if approve else "rejected"
        logger.info(f"📝 Admin {admin.id} {verb} {len(services)} of {len(data.serviceIds)} services")
        return {
            "message": f"Successfully {verb} {len(services)} services",
            "modified": len(services),
            "action": new_status,
            "total": len(data.serviceIds),
        }

    # ========================================================================
    # USER MANAGEMENT
    # ========================================================================

    def list_users(self, search: Optional[str], role: Optional[str], status: Optional[str], page: int, limit: int) -> dict:
        query = self.repo.users_query(self.db, search, role, status)
        users, total = paginate(query, page, limit)
        return {
            "users": [serialize_user(u) for u in users],
            "pagination": pagination_meta(page, limit, total, extended=True),
        }

    def user_stats(self) -> dict:
        by_role = self.repo.user_counts(self.db, User.role)
        by_status = self.repo.user_counts(self.db, User.account_status)
        total = sum(by_role.values())
        since = datetime.utcnow() - timedelta(days=RECENT_SIGNUP_DAYS)
        return {
            "stats": {
                "total": total,
                "byRole": {role: by_role.get(role, 0) for role in USER_ROLES},
                "byStatus": by_status,
                "customers": by_role.get(ROLE_CUSTOMER, 0),
                "providers": by_role.get(ROLE_PROVIDER, 0),
                "admins": by_role.get(ROLE_ADMIN, 0),
                "activeRate": _percentage(by_status.get(ACCOUNT_ACTIVE, 0), total),
                "newLast30Days": self.repo.count_users_since(self.db, since),
            }
        }

    def update_user_status(self, user_id: int, admin: User, status: str) -> dict:
        if status not in ADMIN_SETTABLE_ACCOUNT_STATUSES:
            raise HTTPException(status_code=400, detail="Invalid status")

        user = self.repo.get_user(self.db, user_id)
        if not user or user.is_deleted:
            raise HTTPException(status_code=404, detail="User not found")
        if user.id == admin.id:
            raise HTTPException(status_code=400, detail="You cannot change your own status")

        previous = user.account_status
        user.account_status = status
        self._commit()

        log_security_event(
            "account_status_changed",
            str(user.id),
            details={"admin_id": admin.id, "from": previous, "to": status},
        )
        return {
            "message": f"User status updated to {status} successfully",
            "user": {"id": user.id, "email": user.email, "role": user.role, "accountStatus": user.account_status},
        }

    def delete_user(self, user_id: int, admin: User) -> dict:
        user = self.repo.get_user(self.db, user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        if user.id == admin.id:
            raise HTTPException(status_code=400, detail="You cannot delete your own account")

        was_provider = user.role == ROLE_PROVIDER
        soft = bool(self.repo.count_user_bookings(self.db, user.id))
        if soft:
            # booking history still references the account
            user.is_deleted = True
            user.is_active = False
            user.account_status = ACCOUNT_DEACTIVATED
            user.refresh_tokens = []
            for service in user.services:
                service.status = SERVICE_INACTIVE
                service.is_active = False
        else:
            # profiles, services and availability go with the user through relationship cascades
            self.db.delete(user)
        self._commit()
        if was_provider:
            invalidate_category_cache()

        logger.info(f"🗑️ User {user_id} deleted by admin {admin.id} (soft={soft})")
        log_security_event("account_deleted", str(user_id), details={"admin_id": admin.id, "soft": soft})
        return {"message": "User account deleted successfully", "softDeleted": soft}
