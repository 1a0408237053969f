"""Per-user settings."""

from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from social_accounts.config import settings as app_settings
from social_accounts.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from social_accounts.models.user import User


class Setting(Base, TimestampMixin):
    """One named setting value for a user."""

    __tablename__ = "settings"
    __table_args__ = (UniqueConstraint("user_id", "var", name="uq_settings_user_id_var"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    var: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)

    # Relationships
    user: Mapped["User"] = relationship(back_populates="setting_records")


class SettingsStore:
    """Attribute-style access to a user's settings with application defaults.

    Reads return the stored value, then the configured default, then None.
    Writes create or update the matching ``Setting`` row on the user and are
    persisted with the user.
    """

    def __init__(self, user: "User") -> None:
        object.__setattr__(self, "_user", user)

    def _find(self, name: str) -> Setting | None:
        for record in self._user.setting_records:
            if record.var == name:
                return record
        return None

    def get(self, name: str, default: Any = None) -> Any:
        record = self._find(name)
        if record is not None:
            return record.value
        return app_settings.default_settings.get(name, default)

    def set(self, name: str, value: Any) -> None:
        record = self._find(name)
        if record is None:
            self._user.setting_records.append(Setting(var=name, value=value))
        else:
            record.value = value

    def all(self) -> dict[str, Any]:
        values = dict(app_settings.default_settings)
        values.update({record.var: record.value for record in self._user.setting_records})
        return values

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return self.get(name)

    def __setattr__(self, name: str, value: Any) -> None:
        self.set(name, value)
