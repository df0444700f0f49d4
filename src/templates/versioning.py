"""Template versioning -- save and clone with an append-only history.

Saving a template with changed parameters bumps ``version`` and appends a
``TemplateVersion`` record; metadata-only edits keep the version. Earlier
records are never modified. Cloning starts a new template at version 1
that points back at its parent.

- TemplateVersionStore: abstract history interface
- InMemoryTemplateVersionStore: for tests and the CLI
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from uuid import UUID

from pydantic import Field

from src.config.settings import get_settings
from src.models.common import (
    QualityEngineBase,
    UTCTimestamp,
    UUIDv7,
    new_uuid7,
    utc_now,
)
from src.templates.sharing import GlobalScope, LaboratoryScope, PrivateScope
from src.templates.template import LocalizedText, QualityTemplate, TemplateParameters
from src.templates.validator import TemplateValidator

logger = logging.getLogger(__name__)


class TemplateVersion(QualityEngineBase, frozen=True):
    """Immutable snapshot of a template's parameters at one version."""

    version_id: UUIDv7 = Field(default_factory=new_uuid7)
    template_id: UUID
    version_number: int = Field(ge=1)
    parameters: TemplateParameters
    changes_description: str
    created_by: UUID
    created_at: UTCTimestamp = Field(default_factory=utc_now)


class TemplateVersionStore(ABC):
    """Abstract interface for version history persistence."""

    @abstractmethod
    def append(self, version: TemplateVersion) -> None:
        """Record a new version."""

    @abstractmethod
    def get_versions(self, template_id: UUID) -> list[TemplateVersion]:
        """All versions of a template, oldest first (empty if unknown)."""


class InMemoryTemplateVersionStore(TemplateVersionStore):
    """In-memory version history."""

    def __init__(self) -> None:
        self._store: dict[UUID, list[TemplateVersion]] = {}

    def append(self, version: TemplateVersion) -> None:
        self._store.setdefault(version.template_id, []).append(version)

    def get_versions(self, template_id: UUID) -> list[TemplateVersion]:
        return list(self._store.get(template_id, []))


class TemplateVersioningService:
    """Keeps the current revision of each template and its version history.

    Every register/save/clone validates first and raises ``ValueError`` for
    an invalid template, so an invalid revision never reaches the history.
    Templates registered without a sample size get
    ``default_sample_size_grams``, or ``Settings.DEFAULT_SAMPLE_SIZE_GRAMS``
    when none is given.
    """

    def __init__(
        self,
        store: TemplateVersionStore | None = None,
        validator: TemplateValidator | None = None,
        default_sample_size_grams: float | None = None,
    ) -> None:
        self._store = store or InMemoryTemplateVersionStore()
        self._validator = validator or TemplateValidator()
        if default_sample_size_grams is None:
            default_sample_size_grams = get_settings().DEFAULT_SAMPLE_SIZE_GRAMS
        self._default_sample_size = default_sample_size_grams
        self._templates: dict[UUID, QualityTemplate] = {}

    def register(
        self,
        template: QualityTemplate,
        changes_description: str = "Initial version",
    ) -> QualityTemplate:
        """Register a new template as version 1.

        Raises:
            ValueError: If the id is already registered or the template is invalid.
        """
        if template.template_id in self._templates:
            msg = f"Template {template.template_id} is already registered."
            raise ValueError(msg)

        params = template.parameters
        if params.sample_size_grams is None:
            params = params.model_copy(update={"sample_size_grams": self._default_sample_size})

        initial = template.model_copy(update={"version": 1, "parameters": params})
        self._ensure_valid(initial)
        self._templates[initial.template_id] = initial
        self._store.append(TemplateVersion(
            template_id=initial.template_id,
            version_number=1,
            parameters=initial.parameters,
            changes_description=changes_description,
            created_by=initial.created_by,
        ))
        logger.info("Registered template %s (%s)", initial.template_id, initial.name.en)
        return initial

    def get_latest(self, template_id: UUID) -> QualityTemplate:
        """Current revision of a template.

        Raises:
            KeyError: If template not found.
        """
        template = self._templates.get(template_id)
        if template is None:
            msg = f"Template {template_id} not found."
            raise KeyError(msg)
        return template

    def get_versions(self, template_id: UUID) -> list[TemplateVersion]:
        """Version history, oldest first.

        Raises:
            KeyError: If template not found.
        """
        self.get_latest(template_id)
        return self._store.get_versions(template_id)

    def save(
        self,
        template_id: UUID,
        actor: UUID,
        *,
        name: LocalizedText | None = None,
        description: LocalizedText | None = None,
        origin: str | None = None,
        parameters: TemplateParameters | None = None,
        is_active: bool | None = None,
        sharing: GlobalScope | LaboratoryScope | PrivateScope | None = None,
        changes_description: str | None = None,
    ) -> QualityTemplate:
        """Apply edits to the current revision.

        A new version is recorded only when ``parameters`` differ from the
        current ones.

        Raises:
            KeyError: If template not found.
            ValueError: If the edited template is invalid.
        """
        current = self.get_latest(template_id)
        changes: dict[str, object] = {"updated_at": utc_now()}
        for field, value in (
            ("name", name),
            ("description", description),
            ("origin", origin),
            ("is_active", is_active),
            ("sharing", sharing),
        ):
            if value is not None:
                changes[field] = value

        parameters_changed = parameters is not None and parameters != current.parameters
        if parameters_changed:
            changes["parameters"] = parameters
            changes["version"] = current.version + 1

        updated = current.model_copy(update=changes)
        self._ensure_valid(updated)
        self._templates[template_id] = updated

        if parameters_changed:
            self._store.append(TemplateVersion(
                template_id=template_id,
                version_number=updated.version,
                parameters=updated.parameters,
                changes_description=changes_description or f"Updated to version {updated.version}",
                created_by=actor,
            ))
            logger.info("Saved template %s as version %d", template_id, updated.version)
        else:
            logger.info("Saved template %s metadata (version %d)", template_id, updated.version)
        return updated

    def clone(
        self,
        template_id: UUID,
        actor: UUID,
        *,
        name: LocalizedText | None = None,
        sharing: GlobalScope | LaboratoryScope | PrivateScope | None = None,
    ) -> QualityTemplate:
        """Copy a template into a new one owned by ``actor``.

        The clone starts at version 1, references its parent, and is private
        unless ``sharing`` says otherwise.

        Raises:
            KeyError: If template not found.
        """
        source = self.get_latest(template_id)
        now = utc_now()
        clone = source.model_copy(
            update={
                "template_id": new_uuid7(),
                "name": name or _copy_name(source.name),
                "version": 1,
                "is_active": True,
                "sharing": sharing or PrivateScope(),
                "created_by": actor,
                "template_parent_id": source.template_id,
                "created_at": now,
                "updated_at": now,
            },
            deep=True,
        )
        return self.register(clone, changes_description=f"Cloned from template: {source.name.en}")

    def _ensure_valid(self, template: QualityTemplate) -> None:
        result = self._validator.validate(template)
        if not result.valid:
            msg = f"Template {template.template_id} is invalid: " + "; ".join(result.errors)
            raise ValueError(msg)


def _copy_name(name: LocalizedText) -> LocalizedText:
    return LocalizedText(
        en=f"{name.en} (Copy)",
        pt=f"{name.pt} (Cópia)" if name.pt else None,
        es=f"{name.es} (Copia)" if name.es else None,
    )
