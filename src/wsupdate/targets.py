"""Resolve raw project specifiers (``alpha``, ``alphas``, ``alphaw``) into components."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from wsupdate import log
from wsupdate.errors import FailureKind, UpdateError
from wsupdate.models import (
    SUFFIXES,
    ComponentKind,
    ComponentRestriction,
    TaskResult,
    UpdateTarget,
)
from wsupdate.registry import ProjectRegistry

_RESTRICTED_KIND: dict[ComponentRestriction, ComponentKind] = {
    ComponentRestriction.SERVER_ONLY: ComponentKind.SERVER,
    ComponentRestriction.WEB_ONLY: ComponentKind.WEB,
}


@dataclass(frozen=True)
class ComponentRef:
    """One concrete (project, component) checkout to update."""

    project: str
    kind: ComponentKind
    path: Path


@dataclass
class UpdatePlan:
    components: list[ComponentRef] = field(default_factory=list)
    rejected: list[TaskResult] = field(default_factory=list)


class TargetResolver:
    def __init__(self, registry: ProjectRegistry) -> None:
        self.registry = registry

    def parse(self, specifier: str) -> UpdateTarget:
        """Split *specifier* into base project and component restriction.

        An exact project match always wins over a suffix reading, so a
        project literally named ``tools`` is never read as ``tool`` + server.
        Raises :class:`UpdateError` (``UNKNOWN_TARGET``) when nothing matches.
        """
        full = self.registry.full_name(specifier) if specifier else None
        if full is not None:
            return UpdateTarget(specifier, full)

        if len(specifier) > 1 and specifier[-1] in SUFFIXES:
            base = self.registry.full_name(specifier[:-1])
            if base is not None:
                return UpdateTarget(specifier, base, SUFFIXES[specifier[-1]])

        raise UpdateError("Unknown project", kind=FailureKind.UNKNOWN_TARGET)

    def expand(self, target: UpdateTarget) -> list[ComponentRef]:
        """Components covered by *target*.

        Unrestricted targets cover the main checkout plus every declared
        component. Raises :class:`UpdateError` (``MISSING_COMPONENT``) when a
        restricted target names a component the project does not have.
        """
        root = self.registry.resolve_path(target.base_project)
        if root is None:
            raise UpdateError("Unknown project", kind=FailureKind.UNKNOWN_TARGET)

        if target.restriction is ComponentRestriction.NONE:
            refs = [ComponentRef(target.base_project, ComponentKind.MAIN, root)]
            for kind in (ComponentKind.SERVER, ComponentKind.WEB):
                rel = self.registry.resolve_component_path(target.base_project, kind)
                if rel is not None:
                    refs.append(ComponentRef(target.base_project, kind, root / rel))
            return refs

        kind = _RESTRICTED_KIND[target.restriction]
        rel = self.registry.resolve_component_path(target.base_project, kind)
        if rel is None:
            raise UpdateError(f"No {kind.value} component found", kind=FailureKind.MISSING_COMPONENT)
        return [ComponentRef(target.base_project, kind, root / rel)]

    def plan(self, specifiers: list[str]) -> UpdatePlan:
        """Resolve every specifier; an empty list means the whole workspace.

        Bad specifiers become failed entries in ``rejected`` and never stop
        the rest of the batch. A component reached through more than one
        specifier is planned once.
        """
        if not specifiers:
            specifiers = self.registry.list_all_project_names()

        plan = UpdatePlan()
        seen: set[tuple[str, ComponentKind]] = set()
        # One task per working tree, however many components point at it
        owners: dict[Path, ComponentRef] = {}
        for spec in specifiers:
            try:
                refs = self.expand(self.parse(spec))
            except UpdateError as exc:
                plan.rejected.append(TaskResult.failed(spec, exc.kind, str(exc)))
                continue

            for ref in refs:
                key = (ref.project, ref.kind)
                if key in seen:
                    log.debug(f"{spec}: {ref.project} {ref.kind.value} already planned")
                    continue
                seen.add(key)

                tree = ref.path.resolve()
                owner = owners.get(tree)
                if owner is not None:
                    log.debug(
                        f"{spec}: {ref.project} {ref.kind.value} shares {tree} "
                        f"with {owner.project} {owner.kind.value}"
                    )
                    continue
                owners[tree] = ref
                plan.components.append(ref)
        return plan
