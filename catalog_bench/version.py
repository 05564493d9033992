"""
Version string for the command line.

The version lives in the bundled ``version.properties`` resource (key
``cli.version``) rather than in code, so packaging can stamp it without
touching Python sources.  Failing to read it is fatal: the CLI refuses
to start instead of reporting a made-up version.
"""

from __future__ import annotations

from importlib import resources

from catalog_bench.exceptions import VersionResourceError

VERSION_RESOURCE = "version.properties"
VERSION_KEY = "cli.version"


def parse_properties(text: str) -> dict[str, str]:
    """
    Parse ``key=value`` lines in Java properties style.

    Blank lines and lines starting with ``#`` or ``!`` are ignored.  The
    first ``=`` or ``:`` separates key and value; surrounding whitespace
    is stripped from both.
    """
    properties: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line[0] in "#!":
            continue
        cut = min((i for i in (line.find("="), line.find(":")) if i >= 0), default=-1)
        if cut < 0:
            properties[line] = ""
            continue
        properties[line[:cut].strip()] = line[cut + 1:].strip()
    return properties


def get_version(
    package: str = "catalog_bench",
    resource: str = VERSION_RESOURCE,
) -> list[str]:
    """
    Return the CLI version as a one-element list.

    Args:
        package: Package that bundles the resource.
        resource: Resource file name inside *package*.

    Raises:
        VersionResourceError: If the resource is missing, unreadable or
            lacks the ``cli.version`` key.
    """
    try:
        text = resources.files(package).joinpath(resource).read_text(encoding="utf-8")
    except (OSError, ModuleNotFoundError) as exc:
        raise VersionResourceError(f"Cannot read {resource} from {package}: {exc}") from exc

    version = parse_properties(text).get(VERSION_KEY)
    if not version:
        raise VersionResourceError(f"{resource} does not define {VERSION_KEY}")
    return [version]
