from datetime import date

import pytest

from ghwizard import release, release_manager
from ghwizard.errors import ErrorKind, GitHubError

README = "# Widgets\n\nLatest: v1.0.0\n"
CHANGELOG = "# Changelog\n\n## [v1.0.0] - 2024-01-01\n\n### Added\n\n- first release\n"


@pytest.fixture
def repo(tmp_path, monkeypatch, fake_client):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "README.md").write_text(README)
    (tmp_path / "CHANGELOG.md").write_text(CHANGELOG)
    fake_client.latest_tag = "v1.0.0"
    fake_client.commits = ["feat: add export", "fix: crash on empty body (fixes #1)"]
    return tmp_path


@pytest.fixture
def run(fake_client, config_factory):
    def invoke(*argv):
        return release_manager.main(list(argv), client=fake_client, config_loader=lambda: config_factory())
    return invoke


def snapshot(path):
    return {p.name: p.read_bytes() for p in sorted(path.iterdir()) if p.is_file()}


def test_dry_run_writes_nothing(repo, run, fake_client):
    before = snapshot(repo)
    assert run("--dry-run") == 0
    assert run("-d", "--minor") == 0
    assert snapshot(repo) == before
    assert fake_client.releases == []
    assert fake_client.called("create_release") == []


def test_dry_run_does_not_need_auth(repo, run, fake_client):
    fake_client.authenticated = False
    assert run("-d") == 0


def test_patch_release(repo, run, fake_client):
    assert run() == 0
    changelog = (repo / "CHANGELOG.md").read_text()
    assert changelog.index("## [v1.0.1]") < changelog.index("## [v1.0.0]")
    assert "- add export" in changelog
    assert (repo / "README.md").read_text() == "# Widgets\n\nLatest: v1.0.1\n"
    assert fake_client.releases[0]["tag"] == "v1.0.1"
    assert fake_client.releases[0]["prerelease"] is False
    assert (repo / "CHANGELOG.md.backup").read_text() == CHANGELOG


def test_alpha_pre_release(repo, run, fake_client):
    assert run("-a", "1") == 0
    assert fake_client.releases[0]["tag"] == "v1.0.1-alpha.1"
    assert fake_client.releases[0]["prerelease"] is True


def test_minor_beta(repo, run, fake_client):
    assert run("--minor", "--beta", "2") == 0
    assert fake_client.releases[0]["tag"] == "v1.1.0-beta.2"


def test_major(repo, run, fake_client):
    assert run("-M") == 0
    assert fake_client.releases[0]["tag"] == "v2.0.0"


def test_conflicting_flags_are_usage_errors(repo, run):
    with pytest.raises(SystemExit) as exc:
        run("-a", "1", "-b", "1")
    assert exc.value.code == 1
    with pytest.raises(SystemExit):
        run("-M", "-m")


def test_malformed_tag(repo, run, fake_client):
    fake_client.latest_tag = "vnext"
    assert run() == 1
    assert fake_client.releases == []


def test_first_release_without_tags(repo, run, fake_client):
    fake_client.latest_tag = None
    assert run() == 0
    assert fake_client.releases[0]["tag"] == "v0.0.1"
    assert (repo / "README.md").read_text() == README


def test_unauthenticated_real_run(repo, run, fake_client):
    fake_client.authenticated = False
    assert run() == 2
    assert (repo / "CHANGELOG.md").read_text() == CHANGELOG


def test_not_a_git_repository(repo, run, fake_client, monkeypatch):
    monkeypatch.setattr(fake_client, "in_git_repo", lambda: False)
    assert run() == 1


def test_release_failure_rolls_back(repo, run, fake_client):
    fake_client.fail["create_release"] = GitHubError("dial tcp: i/o timeout", kind=ErrorKind.NETWORK)
    assert run() == 3
    assert (repo / "CHANGELOG.md").read_text() == CHANGELOG
    assert (repo / "README.md").read_text() == README


def test_close_issues(repo, run, fake_client):
    fake_client.add_issue("Crash on empty body")
    assert run("-c") == 0
    assert fake_client.issues[1]["state"] == "CLOSED"
    assert fake_client.called("close_issue")[0][1] == "Resolved in v1.0.1"


def test_dry_run_is_repeatable(repo, run, fake_client):
    options = release.ReleaseOptions(bump="minor", dry_run=True, close_issues=True)
    first = release.plan_release(fake_client, options, release_date=date(2024, 5, 1))
    second = release.plan_release(fake_client, options, release_date=date(2024, 5, 1))
    assert (first.next_version, first.changelog_text) == (second.next_version, second.changelog_text)
    assert "## [v1.1.0] - 2024-05-01" in first.changelog_text
    before = snapshot(repo)
    assert run("-d", "-m") == 0
    assert run("-d", "-m") == 0
    assert snapshot(repo) == before


def test_unwritable_changelog_exits_one(repo, run, fake_client, monkeypatch):
    def refuse(path, content):
        raise PermissionError(13, "Permission denied", path)

    monkeypatch.setattr(release, "write_text_atomic", refuse)
    assert run() == 1
    assert fake_client.releases == []
    assert (repo / "CHANGELOG.md").read_text() == CHANGELOG
