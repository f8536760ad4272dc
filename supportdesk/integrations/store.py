# supportdesk/integrations/store.py
import json
import logging
import os
import tempfile
import threading
from functools import lru_cache
from pathlib import Path

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from supportdesk.core.config import get_settings
from supportdesk.core.errors import ConflictError, ValidationFailedError
from supportdesk.integrations.schemas import (
    AppConfig,
    ConnectedAccount,
    EmailRule,
    EmailSettings,
    Integrations,
    MailtrapSettings,
    UiSettings,
    WebhookRule,
    WebhookSettings,
)

logger = logging.getLogger(__name__)


class ConfigStore:
    """JSON-file repository for the integrations document.

    ``load`` always returns a complete document. Each section is merged
    against its defaults on its own and an invalid rule is dropped alone;
    only a file that is not a JSON object yields the defaults.

    ``save`` bumps the document version; when ``expected_version`` is given
    and no longer matches, the write is refused instead of silently
    overwriting.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _ensure_file(self) -> None:
        if self.path.exists():
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._write(AppConfig())

    def _write(self, config: AppConfig) -> None:
        data = config.model_dump(mode="json", by_alias=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".app-config-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _section(self, model, data, label: str, **item_models):
        """Validate one sub-object; bad scalars fall back, bad list items are dropped.

        ``item_models`` maps list field names to the model of their items, so
        one broken rule costs only that rule and not its siblings.
        """
        if not isinstance(data, dict):
            if data is not None:
                logger.warning("Config section %s in %s is not an object; using defaults", label, self.path)
            data = {}
        aliases = {to_camel(name): name for name in item_models}
        scalars = {k: v for k, v in data.items() if k not in aliases and k not in item_models}
        try:
            section = model.model_validate(scalars)
        except ValidationError as exc:
            logger.warning(
                "Config section %s in %s failed validation (%s errors); using defaults",
                label,
                self.path,
                exc.error_count(),
            )
            section = model()

        for name, item_model in item_models.items():
            items = data.get(to_camel(name), data.get(name))
            if items is None:
                continue
            if not isinstance(items, list):
                logger.warning("Config list %s.%s in %s is not a list; ignoring", label, name, self.path)
                continue
            kept = []
            for index, item in enumerate(items):
                try:
                    kept.append(item_model.model_validate(item))
                except ValidationError as exc:
                    logger.warning(
                        "Dropping invalid entry %s.%s[%s] in %s (%s errors)",
                        label,
                        name,
                        index,
                        self.path,
                        exc.error_count(),
                    )
            setattr(section, name, kept)
        return section

    def _merge(self, parsed: dict) -> AppConfig:
        integrations = parsed.get("integrations")
        if not isinstance(integrations, dict):
            integrations = {}
        version = parsed.get("version", 0)
        if not isinstance(version, int) or isinstance(version, bool):
            logger.warning("Config document %s has a bad version; starting from 0", self.path)
            version = 0
        return AppConfig(
            ui=self._section(UiSettings, parsed.get("ui"), "ui"),
            integrations=Integrations(
                mailtrap=self._section(MailtrapSettings, integrations.get("mailtrap"), "mailtrap"),
                webhooks=self._section(
                    WebhookSettings, integrations.get("webhooks"), "webhooks", rules=WebhookRule
                ),
                email=self._section(
                    EmailSettings,
                    integrations.get("email"),
                    "email",
                    rules=EmailRule,
                    connected_accounts=ConnectedAccount,
                ),
            ),
            version=version,
        )

    def _read(self) -> AppConfig:
        self._ensure_file()
        raw = self.path.read_text(encoding="utf-8")
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Config document %s is not valid JSON; using defaults", self.path)
            return AppConfig()
        if not isinstance(parsed, dict):
            logger.warning("Config document %s is not an object; using defaults", self.path)
            return AppConfig()
        return self._merge(parsed)

    def load(self) -> AppConfig:
        with self._lock:
            return self._read()

    def save(self, config: AppConfig, expected_version: int | None = None) -> AppConfig:
        validate_config(config)
        with self._lock:
            current = self._read()
            if expected_version is not None and expected_version != current.version:
                raise ConflictError(
                    "Configuration changed since it was loaded; reload and retry"
                )
            saved = config.model_copy(update={"version": current.version + 1})
            self._write(saved)
        logger.info("Config document saved version=%s", saved.version)
        return saved


def validate_config(config: AppConfig) -> None:
    seen: set[str] = set()
    for rule in config.integrations.webhooks.rules:
        if rule.key in seen:
            raise ValidationFailedError(f"Duplicate webhook key on rule '{rule.name}'")
        seen.add(rule.key)


@lru_cache
def get_config_store() -> ConfigStore:
    return ConfigStore(get_settings().APP_CONFIG_PATH)
