"""Package manager detection for a component checkout."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from wsupdate.models import ComponentKind


@dataclass(frozen=True)
class PackageCommand:
    manager: str
    command: tuple[str, ...]
    description: str


MAVEN = PackageCommand(
    manager="maven",
    command=("mvn", "dependency:resolve", "dependency:resolve-sources", "-q"),
    description="Updating Maven dependencies",
)

NPM = PackageCommand(
    manager="npm",
    command=("npm", "install", "--silent"),
    description="Running npm install",
)


def detect_package_commands(kind: ComponentKind, path: Path) -> list[PackageCommand]:
    """Package updates to run for *kind* at *path*, in order.

    Server components always get Maven and web components always get npm.
    A main checkout gets whichever of the two its manifests call for:
    ``pom.xml`` for Maven, ``package.json`` for npm, possibly both or neither.
    """
    match kind:
        case ComponentKind.SERVER:
            return [MAVEN]
        case ComponentKind.WEB:
            return [NPM]
        case _:
            commands: list[PackageCommand] = []
            if (path / "pom.xml").is_file():
                commands.append(MAVEN)
            if (path / "package.json").is_file():
                commands.append(NPM)
            return commands
