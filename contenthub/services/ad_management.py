"""
Ad Management Service.

Admin-side create / edit / activate / delete for ``ads`` and
``ad_placements``, the rows ``AdResolver`` serves.  Every operation runs
on the requesting visitor's own client behind ``require_admin``, so the
database's row-level security and the application guard both apply.

Each method returns a ``ServiceResult``; the admin pages show its
``message`` or ``error`` as-is.
"""

from __future__ import annotations

from typing import Awaitable, Callable

from contenthub.auth import SessionManager
from contenthub.guard import AdminAccessError, require_admin
from contenthub.models.service_models import AdInput, PlacementInput, ServiceResult
from contenthub.repositories.ad_repository import AdRepository
from contenthub.repositories.base_repository import RepositoryError
from contenthub.services.base_service import BaseService
from contenthub.utils.audit import log_audit_event

AdOperation = Callable[[AdRepository], Awaitable[ServiceResult]]


class AdManagementService(BaseService):
    """Ad and placement administration."""

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def load(self, session: SessionManager) -> ServiceResult:
        """All ads and placements; ``data`` holds ``ads`` and ``placements``."""

        async def _load(repo: AdRepository) -> ServiceResult:
            ads = await repo.list_all()
            placements = await repo.list_placements()
            return ServiceResult(success=True, data={"ads": ads, "placements": placements})

        return await self._run(session, "load ads", _load)

    # ------------------------------------------------------------------
    # Ads
    # ------------------------------------------------------------------

    async def create_ad(self, session: SessionManager, ad: AdInput) -> ServiceResult:
        async def _create(repo: AdRepository) -> ServiceResult:
            created = await repo.insert_ad(ad.model_dump(mode="json"))
            self._audit(session, "AD_CREATE", "Ad", created.id, {"position": str(created.position)})
            return ServiceResult(success=True, data=created, message="Ad created successfully")

        return await self._run(session, "create ad", _create)

    async def update_ad(self, session: SessionManager, ad_id: str, ad: AdInput) -> ServiceResult:
        async def _update(repo: AdRepository) -> ServiceResult:
            updated = await repo.update_ad(ad_id, ad.model_dump(mode="json"))
            if updated is None:
                return _not_found("Ad")
            self._audit(session, "AD_UPDATE", "Ad", ad_id, {"position": str(updated.position)})
            return ServiceResult(success=True, data=updated, message="Ad updated successfully")

        return await self._run(session, "update ad", _update)

    async def set_ad_active(
        self, session: SessionManager, ad_id: str, is_active: bool,
    ) -> ServiceResult:
        """Switch an ad on or off without touching its other fields."""

        async def _toggle(repo: AdRepository) -> ServiceResult:
            updated = await repo.update_ad(ad_id, {"is_active": is_active})
            if updated is None:
                return _not_found("Ad")
            self._audit(session, "AD_STATUS", "Ad", ad_id, {"is_active": is_active})
            return ServiceResult(success=True, data=updated, message="Ad status updated")

        return await self._run(session, "update ad status", _toggle)

    async def delete_ad(self, session: SessionManager, ad_id: str) -> ServiceResult:
        async def _delete(repo: AdRepository) -> ServiceResult:
            if not await repo.delete_ad(ad_id):
                return _not_found("Ad")
            self._audit(session, "AD_DELETE", "Ad", ad_id)
            return ServiceResult(success=True, message="Ad deleted successfully")

        return await self._run(session, "delete ad", _delete)

    # ------------------------------------------------------------------
    # Placements
    # ------------------------------------------------------------------

    async def create_placement(
        self, session: SessionManager, placement: PlacementInput,
    ) -> ServiceResult:
        async def _create(repo: AdRepository) -> ServiceResult:
            created = await repo.insert_placement(placement.model_dump(mode="json"))
            self._audit(
                session, "PLACEMENT_CREATE", "AdPlacement", created.id,
                {"post_id": placement.post_id, "ad_id": placement.ad_id},
            )
            return ServiceResult(
                success=True, data=created, message="Placement created successfully",
            )

        return await self._run(session, "create placement", _create)

    async def set_placement_active(
        self, session: SessionManager, placement_id: str, is_active: bool,
    ) -> ServiceResult:
        async def _toggle(repo: AdRepository) -> ServiceResult:
            updated = await repo.update_placement(placement_id, {"is_active": is_active})
            if updated is None:
                return _not_found("Placement")
            self._audit(
                session, "PLACEMENT_STATUS", "AdPlacement", placement_id,
                {"is_active": is_active},
            )
            return ServiceResult(success=True, data=updated, message="Placement status updated")

        return await self._run(session, "update placement status", _toggle)

    async def delete_placement(self, session: SessionManager, placement_id: str) -> ServiceResult:
        async def _delete(repo: AdRepository) -> ServiceResult:
            if not await repo.delete_placement(placement_id):
                return _not_found("Placement")
            self._audit(session, "PLACEMENT_DELETE", "AdPlacement", placement_id)
            return ServiceResult(success=True, message="Placement deleted successfully")

        return await self._run(session, "delete placement", _delete)

    # ------------------------------------------------------------------
    # Private implementation
    # ------------------------------------------------------------------

    async def _run(
        self,
        session: SessionManager,
        action: str,
        operation: AdOperation,
    ) -> ServiceResult:
        @require_admin(session)
        async def _guarded() -> ServiceResult:
            return await operation(AdRepository(lambda: session.client, self._logger))

        try:
            return await _guarded()
        except AdminAccessError as exc:
            self._logger.warning(
                "Ad management (%s) refused: %s", action, exc,
                extra={"event": "AD_ADMIN_DENIED"},
            )
            return ServiceResult(success=False, error=str(exc), status_code=403)
        except RuntimeError as exc:
            return ServiceResult(success=False, error=str(exc), status_code=503)
        except RepositoryError as exc:
            self._logger.warning(
                "Ad management (%s) failed: %s", action, exc.original_error or exc,
                extra={"event": "AD_ADMIN_FAILED"},
            )
            return ServiceResult(success=False, error=f"Failed to {action}.", status_code=400)

    def _audit(
        self,
        session: SessionManager,
        action: str,
        entity_type: str,
        entity_id: str,
        details: dict[str, str | bool] | None = None,
    ) -> None:
        actor = session.snapshot.user
        log_audit_event(
            logger=self._logger,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=actor.id if actor else "unknown",
            details=dict(details or {}),
        )


def _not_found(entity: str) -> ServiceResult:
    return ServiceResult(success=False, error=f"{entity} not found.", status_code=404)
