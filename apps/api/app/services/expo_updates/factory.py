"""Factory wiring the update delivery service from settings."""

from __future__ import annotations

from functools import partial

from sqlalchemy.orm import Session

from apps.api.app.core.config import Settings
from apps.api.app.services.expo_updates.resolution import UpdateResolutionEngine
from apps.api.app.services.expo_updates.service import UpdateDeliveryService
from apps.api.app.services.expo_updates.signing import PayloadSigner
from apps.api.app.services.expo_updates.statistics import StatisticsSink
from apps.api.app.services.expo_updates.store import SqlAlchemyUpdateStore
from apps.api.app.services.key_encryption import decrypt_secret


def build_update_delivery_service(
    db: Session,
    *,
    settings: Settings,
    statistics: StatisticsSink | None,
) -> UpdateDeliveryService:
    engine = UpdateResolutionEngine(
        SqlAlchemyUpdateStore(db),
        asset_base_url=settings.base_url,
        statistics=statistics,
    )
    signer = PayloadSigner(
        decrypt_key=partial(decrypt_secret, secret=settings.app_pk_secret),
        failure_mode=settings.signing_failure_mode,
    )
    return UpdateDeliveryService(engine=engine, signer=signer)
