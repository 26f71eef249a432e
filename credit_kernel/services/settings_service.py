"""
SettingsService -- read and administer the store-credit settings record.

Responsibility:
    Serve the active ``StoreCreditSettings`` to checkout and earning code,
    create the singleton "default" record from configured defaults, and
    apply admin updates.

Invariants enforced:
    - Exactly one row per settings_key (unique constraint).
    - A missing row never breaks checkout: ``get_settings()`` falls back to
      the configured defaults.
    - Values are validated by ``StoreCreditSettings`` before they are stored.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from credit_kernel.domain.types import StoreCreditSettings
from credit_kernel.exceptions import SettingsNotFoundError
from credit_kernel.logging_config import get_logger
from credit_kernel.models.credit import DEFAULT_SETTINGS_KEY, StoreCreditSettingsModel
from credit_kernel.services.base import BaseService

logger = get_logger("services.settings")


class SettingsService(BaseService[StoreCreditSettingsModel]):
    """
    Args:
        session: Caller-owned session.
        defaults: Settings used when no record exists and by
            ``initialize_defaults()``; normally built from ``credit_config``.
        settings_key: Which record to manage.
    """

    model = StoreCreditSettingsModel

    def __init__(
        self,
        session: Session,
        defaults: StoreCreditSettings,
        settings_key: str = DEFAULT_SETTINGS_KEY,
    ):
        super().__init__(session)
        self.defaults = defaults
        self.settings_key = settings_key

    def _find(self) -> StoreCreditSettingsModel | None:
        return self._one_by(StoreCreditSettingsModel.settings_key, self.settings_key)

    def get_settings(self) -> StoreCreditSettings:
        """Stored settings, or the configured defaults when none are stored."""
        row = self._find()
        if row is None:
            logger.info("settings_defaults_used", extra={"settings_key": self.settings_key})
            return self.defaults
        return row.to_dto()

    def get_stored_settings(self) -> StoreCreditSettings:
        """
        Raises:
            SettingsNotFoundError: If no record exists.
        """
        row = self._find()
        if row is None:
            raise SettingsNotFoundError(self.settings_key)
        return row.to_dto()

    def initialize_defaults(self, force: bool = False) -> bool:
        """
        Write the configured defaults.

        Returns:
            True if a record was created or overwritten, False if one
            already existed and ``force`` was not set.
        """
        row = self._find()
        if row is not None and not force:
            logger.info("settings_already_initialized", extra={
                "settings_key": self.settings_key,
                "current": row.to_dto().to_dict(),
            })
            return False

        if row is None:
            row = StoreCreditSettingsModel(settings_key=self.settings_key)
            self.session.add(row)
        row.apply(self.defaults)
        row.updated_by = "system"
        self.session.flush()

        logger.info("settings_initialized", extra={
            "settings_key": self.settings_key,
            "forced": force,
            "settings": self.defaults.to_dict(),
        })
        return True

    def update_settings(
        self,
        settings: StoreCreditSettings,
        updated_by: str,
    ) -> StoreCreditSettings:
        row = self._find()
        if row is None:
            row = StoreCreditSettingsModel(settings_key=self.settings_key)
            self.session.add(row)
        row.apply(settings)
        row.updated_by = updated_by
        self.session.flush()

        logger.info("settings_updated", extra={
            "settings_key": self.settings_key,
            "actor_id": updated_by,
            "settings": settings.to_dict(),
        })
        return settings
