"""
Repository reference resolution.

Turns whatever the user typed (a GitHub URL, ``owner/repo`` or a bare name)
into a canonical reference. Parsing is lenient: missing pieces degrade to
``"unknown"`` instead of failing.
"""

from dataclasses import dataclass

from repobook.exceptions import RepositoryReferenceError

UNKNOWN = "unknown"
GITHUB_HOST = "github.com"


@dataclass(frozen=True)
class RepositoryRef:
    """A resolved GitHub repository."""

    owner: str
    name: str
    canonical_url: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def display_name(self) -> str:
        return self.name


def normalize_reference(raw_input: str) -> str:
    """Trim whitespace and strip trailing slashes and a ``.git`` suffix."""
    value = raw_input.strip().rstrip("/")
    if value.endswith(".git"):
        value = value[: -len(".git")]
    return value.rstrip("/")


def resolve_repository(raw_input: str) -> RepositoryRef:
    """
    Resolve a raw repository reference.

    A full GitHub URL whose owner and repository both parse keeps its
    normalized form as the canonical URL, so the user's casing survives.
    Every other input is canonicalized to ``https://github.com/<owner>/<repo>``.

    Args:
        raw_input: URL, ``owner/repo`` or bare repository name

    Returns:
        RepositoryRef

    Raises:
        RepositoryReferenceError: If the input is empty or blank
    """
    if raw_input is None or not raw_input.strip():
        raise RepositoryReferenceError("Repository URL is required")

    normalized = normalize_reference(raw_input)

    if GITHUB_HOST in normalized:
        remainder = normalized.split(f"{GITHUB_HOST}/", 1)
        path = remainder[1] if len(remainder) > 1 else ""
        for separator in ("?", "#"):
            path = path.split(separator, 1)[0]
        segments = [segment for segment in path.split("/") if segment]

        owner = segments[0] if len(segments) > 0 else UNKNOWN
        name = segments[1] if len(segments) > 1 else UNKNOWN
        if name.endswith(".git"):
            name = name[: -len(".git")] or UNKNOWN

        if len(segments) >= 2 and name != UNKNOWN:
            return RepositoryRef(owner=owner, name=name, canonical_url=normalized)
        return RepositoryRef(
            owner=owner,
            name=name,
            canonical_url=f"https://{GITHUB_HOST}/{owner}/{name}",
        )

    if "/" in normalized:
        parts = normalized.split("/")
        owner = parts[0] or UNKNOWN
        name = parts[1] if len(parts) > 1 and parts[1] else UNKNOWN
    else:
        owner, name = UNKNOWN, normalized

    return RepositoryRef(
        owner=owner,
        name=name,
        canonical_url=f"https://{GITHUB_HOST}/{owner}/{name}",
    )
