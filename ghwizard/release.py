"""
release.py

Version computation, changelog generation and the release pipeline shared by the release
manager script and the wizard's release workflow.

calculate_next_version and the changelog builders are pure; plan_release gathers everything
a release needs without writing anything, and apply_release performs the writes and the
remote calls. A dry run is plan_release alone.
"""
import os
import re
import shutil
import tempfile
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Tuple

from ghwizard.errors import GitHubError, VersionError
from ghwizard.utils.fields import SEMVER_PATTERN
from ghwizard.utils.logging import contextual_log

BUMP_KINDS = ("major", "minor", "patch")

CHANGELOG_HEADER = (
    "# Changelog\n"
    "\n"
    "All notable changes to this project will be documented in this file.\n"
    "\n"
    "The format is based on [Keep a Changelog](https://keepachangelog.com/en/1.0.0/), "
    "and this project adheres to [Semantic Versioning](https://semver.org/spec/v2.0.0.html).\n"
)

SECTION_ORDER = ("Added", "Changed", "Deprecated", "Removed", "Fixed", "Security", "Other Changes")

COMMIT_TYPES = {
    "feat": "Added",
    "fix": "Fixed",
    "security": "Security",
    "deprecate": "Deprecated",
    "deprecated": "Deprecated",
    "remove": "Removed",
    "removed": "Removed",
    "docs": "Changed",
    "chore": "Changed",
    "refactor": "Changed",
    "perf": "Changed",
    "style": "Changed",
    "test": "Changed",
}

CONVENTIONAL_RE = re.compile(r'^(?P<type>[A-Za-z]+)(?:\([^)]*\))?!?:\s*(?P<subject>.+)$')
CLOSING_RE = re.compile(r'\b(?:close[sd]?|fix(?:e[sd])?|resolve[sd]?)\s+#([0-9]+)', re.IGNORECASE)
NO_CHANGES_LINE = "- No significant changes in this release"
BACKUP_SUFFIX = ".backup"


def parse_version(version: str) -> Tuple[int, int, int]:
    """
    Split 'MAJOR.MINOR.PATCH' into ints. Raises VersionError for anything else.
    """
    match = SEMVER_PATTERN.match(str(version or "").strip())
    if not match:
        raise VersionError(f"Invalid version format: {version!r} (expected MAJOR.MINOR.PATCH)")
    return int(match.group(1)), int(match.group(2)), int(match.group(3))


def calculate_next_version(current: str, bump: str = "patch", pre_release: bool = False,
                           pre_release_tag: Optional[str] = None) -> str:
    """
    Compute the next semantic version.

    Args:
        current (str): current version, e.g. '1.2.3'.
        bump (str): 'major', 'minor' or 'patch'.
        pre_release (bool): append pre_release_tag with a hyphen.
        pre_release_tag (str, optional): e.g. 'alpha.1'.
    Returns:
        str: the next version, e.g. '1.2.4' or '1.2.4-alpha.1'.
    Raises:
        VersionError: malformed current version, unknown bump kind, or a missing tag.
    """
    major, minor, patch = parse_version(current)
    if bump == "major":
        major, minor, patch = major + 1, 0, 0
    elif bump == "minor":
        minor, patch = minor + 1, 0
    elif bump == "patch":
        patch += 1
    else:
        raise VersionError(f"Unknown bump kind: {bump!r} (expected major, minor or patch)")
    version = f"{major}.{minor}.{patch}"
    if pre_release:
        if not pre_release_tag or not re.match(r'^[0-9A-Za-z.-]+$', pre_release_tag):
            raise VersionError(f"Invalid pre-release tag: {pre_release_tag!r}")
        version = f"{version}-{pre_release_tag}"
    return version


def get_current_version(client) -> str:
    """Latest 'v*' tag without its 'v', or '0.0.0' when the repository has none."""
    tag = client.latest_version_tag()
    if not tag:
        return "0.0.0"
    version = tag[1:] if tag.startswith("v") else tag
    return version.split("-", 1)[0]


def categorize_commit(subject: str) -> Tuple[str, str]:
    """
    Map a commit subject onto its changelog section and the entry text.
    Conventional prefixes are stripped; unrecognised subjects keep their full text.
    """
    subject = subject.strip()
    match = CONVENTIONAL_RE.match(subject)
    if match:
        section = COMMIT_TYPES.get(match.group("type").lower())
        if section:
            return section, match.group("subject").strip()
    return "Other Changes", subject


def categorize_commits(commits: List[str]) -> "OrderedDict[str, List[str]]":
    sections = OrderedDict((name, []) for name in SECTION_ORDER)
    for commit in commits:
        if not commit.strip():
            continue
        section, entry = categorize_commit(commit)
        sections[section].append(entry)
    return OrderedDict((name, entries) for name, entries in sections.items() if entries)


def version_label(version: Optional[str]) -> str:
    return f"v{version}" if version else "Unreleased"


def generate_changelog_section(version: Optional[str], commits: List[str], release_date: Optional[date] = None) -> str:
    """
    Render one Keep a Changelog section for the given commits.
    """
    label = version_label(version)
    if version:
        heading = f"## [{label}] - {(release_date or date.today()).isoformat()}"
    else:
        heading = f"## [{label}]"
    lines = [heading, ""]
    sections = categorize_commits(commits)
    if not sections:
        lines += ["### Changed", "", NO_CHANGES_LINE, ""]
    for name, entries in sections.items():
        lines += [f"### {name}", ""]
        lines += [f"- {entry}" for entry in entries]
        lines.append("")
    return "\n".join(lines)


def update_changelog(existing: Optional[str], section: str, version: Optional[str]) -> str:
    """
    Insert section above the newest entry of an existing changelog.
    The header is created when missing and an older section for the same version is replaced.
    """
    existing = existing or ""
    label = re.escape(version_label(version))
    same_version = re.compile(rf'^## \[{label}\].*?(?=^## \[|^\[[^\]]+\]: |\Z)', re.MULTILINE | re.DOTALL)
    body = same_version.sub("", existing)
    first_entry = re.search(r'^## \[', body, re.MULTILINE)
    if first_entry:
        head, rest = body[:first_entry.start()], body[first_entry.start():]
    else:
        head, rest = body, ""
    if not head.strip().startswith("# Changelog"):
        head = CHANGELOG_HEADER + ("\n" + head.strip() + "\n" if head.strip() else "")
    return head.rstrip("\n") + "\n\n" + section.rstrip("\n") + "\n" + ("\n" + rest.lstrip("\n") if rest else "")


def update_readme_version(text: str, old_version: str, new_version: str) -> Tuple[str, int]:
    """Replace 'v<old>' occurrences with 'v<new>'. Returns (text, replacements)."""
    pattern = re.compile(rf'\bv{re.escape(old_version)}(?![\w-]|\.\d)')
    return pattern.subn(f"v{new_version}", text)


def extract_closing_references(commits: List[str]) -> List[int]:
    """Issue numbers referenced as 'closes #N', 'fixes #N' or 'resolves #N'."""
    found = set()
    for commit in commits:
        found.update(int(n) for n in CLOSING_RE.findall(commit))
    return sorted(found)


def build_local_release_notes(commits: List[str], repo_url: Optional[str], tag: str, previous_tag: Optional[str]) -> str:
    features, fixes, other = [], [], []
    for commit in commits:
        section, entry = categorize_commit(commit)
        if section == "Added":
            features.append(entry)
        elif section == "Fixed":
            fixes.append(entry)
        else:
            other.append(commit.strip())
    parts = ["## What's Changed", ""]
    for title, entries in (("✨ New Features", features), ("🐛 Bug Fixes", fixes), ("🔧 Other Changes", other)):
        if entries:
            parts += [f"### {title}", ""] + [f"- {e}" for e in entries] + [""]
    if not (features or fixes or other):
        parts += ["No significant changes in this release.", ""]
    if repo_url and previous_tag:
        parts.append(f"**Full Changelog**: {repo_url}/compare/{previous_tag}...{tag}")
    return "\n".join(parts).rstrip("\n") + "\n"


def read_text(path: str) -> Optional[str]:
    if not os.path.exists(path):
        return None
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def write_text_atomic(path: str, content: str) -> None:
    """Write through a temporary file in the same directory, removed on every exit path."""
    directory = os.path.dirname(os.path.abspath(path))
    fd, tmp_path = tempfile.mkstemp(prefix=".ghwizard-", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


def backup_file(path: str) -> Optional[str]:
    if not os.path.exists(path):
        return None
    backup = path + BACKUP_SUFFIX
    shutil.copy2(path, backup)
    return backup


def restore_backup(path: str) -> bool:
    backup = path + BACKUP_SUFFIX
    if not os.path.exists(backup):
        return False
    shutil.copy2(backup, path)
    return True


@dataclass
class ReleaseOptions:
    bump: str = "patch"
    pre_release_tag: Optional[str] = None
    dry_run: bool = False
    close_issues: bool = False
    draft: bool = False
    title: Optional[str] = None
    version: Optional[str] = None
    changelog_path: str = "CHANGELOG.md"
    readme_path: str = "README.md"

    @property
    def pre_release(self):
        return bool(self.pre_release_tag)


@dataclass
class ReleasePlan:
    current_version: str
    next_version: str
    tag: str
    previous_tag: Optional[str]
    commits: List[str]
    changelog_section: str
    changelog_text: str
    readme_text: Optional[str]
    readme_replacements: int
    notes: str
    closes: List[int] = field(default_factory=list)
    prerelease: bool = False


def plan_release(client, options: ReleaseOptions, release_date: Optional[date] = None) -> ReleasePlan:
    """
    Compute the release without side effects: version, changelog, README and notes.
    """
    previous_tag = client.latest_version_tag()
    current = get_current_version(client)
    if options.version:
        parse_version(options.version)
        next_version = options.version
        if options.pre_release:
            next_version = f"{next_version}-{options.pre_release_tag}"
    else:
        next_version = calculate_next_version(current, options.bump, options.pre_release, options.pre_release_tag)
    tag = f"v{next_version}"
    commits = client.commits_since(previous_tag)
    section = generate_changelog_section(next_version, commits, release_date)
    changelog_text = update_changelog(read_text(options.changelog_path), section, next_version)
    readme = read_text(options.readme_path)
    replacements = 0
    if readme is not None and previous_tag:
        readme, replacements = update_readme_version(readme, current, next_version)
    repo_url = None
    try:
        repo_url = client.repo_context().url
    except GitHubError as e:
        contextual_log('warning', f"Repository context unavailable for release notes: {e}", operation="plan_release")
    notes = build_local_release_notes(commits, repo_url, tag, previous_tag)
    closes = extract_closing_references(commits) if options.close_issues else []
    contextual_log('info', f"Planned release {current} -> {next_version} ({len(commits)} commits)",
                   operation="plan_release", status="success")
    return ReleasePlan(current, next_version, tag, previous_tag, commits, section, changelog_text,
                       readme, replacements, notes, closes, options.pre_release)


def apply_release(client, plan: ReleasePlan, options: ReleaseOptions) -> Dict[str, object]:
    """
    Write CHANGELOG.md and README.md (backing both up first), create the GitHub release and
    optionally close the referenced issues. File changes are rolled back from the backups when
    the release cannot be created. Issue closing failures are warnings.
    """
    written = []
    backups = {path: backup_file(path) for path in (options.changelog_path, options.readme_path)}
    try:
        write_text_atomic(options.changelog_path, plan.changelog_text)
        written.append(options.changelog_path)
        if plan.readme_text is not None and plan.readme_replacements:
            write_text_atomic(options.readme_path, plan.readme_text)
            written.append(options.readme_path)
        try:
            notes = client.generate_release_notes(plan.tag, plan.previous_tag) or plan.notes
        except GitHubError as e:
            contextual_log('warning', f"Generated release notes unavailable, using local notes: {e}", operation="apply_release")
            notes = plan.notes
        url = client.create_release(plan.tag, options.title or f"Release {plan.tag}", notes,
                                    prerelease=plan.prerelease, draft=options.draft)
    except Exception:
        for path in written:
            if backups.get(path):
                restore_backup(path)
            else:
                os.remove(path)
        contextual_log('error', f"Release {plan.tag} failed; restored {', '.join(written) or 'nothing'}",
                       operation="apply_release", status="error")
        raise
    closed, failed = [], []
    for number in plan.closes:
        try:
            client.close_issue(number, comment=f"Resolved in {plan.tag}")
            closed.append(number)
        except GitHubError as e:
            contextual_log('warning', f"Could not close issue #{number}: {e}", operation="close_issue", status="error")
            failed.append(number)
    contextual_log('info', f"Release {plan.tag} created", operation="apply_release", status="success")
    return {"url": url, "written": written, "closed": closed, "close_failed": failed}


def check_release_prerequisites(client, readme_path="README.md") -> List[Tuple[str, bool, str]]:
    """
    Returns:
        list of (check name, passed, detail).
    """
    checks = []
    try:
        branch = client.repo_context().branch
    except GitHubError as e:
        branch = ""
        contextual_log('warning', f"Could not read current branch: {e}", operation="check_release_prerequisites")
    checks.append(("On main/master branch", branch in ("main", "master"), branch or "unknown"))
    clean = client.working_tree_clean()
    checks.append(("Working tree clean", clean, "no uncommitted changes" if clean else "uncommitted changes present"))
    unpushed = client.unpushed_commits()
    checks.append(("No unpushed commits", unpushed == 0, f"{unpushed} unpushed"))
    checks.append(("README.md present", os.path.exists(readme_path), readme_path))
    blockers = client.list_issues(state="open", limit=100, label="release-blocker")
    checks.append(("No release blockers", not blockers,
                   ", ".join(f"#{i.get('number')}" for i in blockers) if blockers else "none"))
    return checks
