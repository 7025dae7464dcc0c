from __future__ import annotations

from dataclasses import dataclass, field


class SiteError(RuntimeError):
    """Base class for every error raised while building a site."""


class ConfigError(SiteError):
    """Raised when configuration or command-line values are missing or invalid."""


class MalformedFrontmatter(SiteError):
    """Raised when a frontmatter block exists but cannot be parsed."""


class InvalidReference(SiteError):
    """Raised when a post links to or embeds a non-absolute URL."""

    def __init__(self, post_id: str, references: list[str]) -> None:
        self.post_id = post_id
        self.references = list(references)
        joined = ", ".join(repr(ref) for ref in self.references)
        super().__init__(
            f"post '{post_id}' has relative or invalid resource links: {joined}. "
            "All resource links (src/href) must be absolute URLs."
        )


class UnresolvedPlaceholder(SiteError):
    """Raised when a share template needs a value the post does not have."""

    def __init__(self, provider: str, placeholder: str) -> None:
        self.provider = provider
        self.placeholder = placeholder
        super().__init__(f"share provider '{provider}' needs {{{placeholder}}} which could not be resolved")


class NoValidPosts(SiteError):
    """Raised when nothing is left to render."""


class OutputError(SiteError):
    """Raised when the output artifact cannot be written."""


@dataclass(frozen=True)
class Issue:
    kind: str
    source: str
    message: str

    def __str__(self) -> str:
        return f"[{self.kind}] {self.source}: {self.message}"


@dataclass
class BuildReport:
    """Document-scoped problems collected during one build."""

    issues: list[Issue] = field(default_factory=list)

    def add(self, kind: str, source: str, message: str) -> None:
        self.issues.append(Issue(kind=kind, source=source, message=message))

    def extend(self, other: "BuildReport") -> None:
        self.issues.extend(other.issues)

    def of_kind(self, kind: str) -> list[Issue]:
        return [issue for issue in self.issues if issue.kind == kind]

    def __bool__(self) -> bool:
        return bool(self.issues)

    def summary(self) -> str:
        if not self.issues:
            return "No problems found."
        counts: dict[str, int] = {}
        for issue in self.issues:
            counts[issue.kind] = counts.get(issue.kind, 0) + 1
        head = ", ".join(f"{kind}={count}" for kind, count in sorted(counts.items()))
        lines = [f"{len(self.issues)} problem(s): {head}"]
        lines.extend(f"  {issue}" for issue in self.issues)
        return "\n".join(lines)
