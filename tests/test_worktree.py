"""Tests for the worktree manager."""

import shutil
import subprocess
from pathlib import Path

import pytest

from golem.core.errors import GitError
from golem.core.worktree import WorktreeManager, parse_worktree_list

PORCELAIN = """worktree /repo
HEAD 1111111111111111111111111111111111111111
branch refs/heads/main

worktree /repo/.golem/worktrees/fix/INC-4521-login-bug
HEAD 2222222222222222222222222222222222222222
branch refs/heads/fix/INC-4521-login-bug

worktree /repo/detached
HEAD 3333333333333333333333333333333333333333
detached

worktree /repo.git
bare
"""


class FakeRunner:
    """Answers git commands from canned responses, matched by longest argument prefix."""

    def __init__(self, responses=None):
        self.responses = responses or {}
        self.calls = []

    def execute(self, args, cwd=None):
        self.calls.append((list(args), cwd))
        for prefix in sorted(self.responses, key=len, reverse=True):
            if tuple(args[:len(prefix)]) == prefix:
                response = self.responses[prefix]
                if isinstance(response, Exception):
                    raise response
                return response
        return ""

    def commands(self):
        return [args for args, _ in self.calls]


class WorktreeRunner(FakeRunner):
    """Fake runner that remembers worktrees added through it."""

    def __init__(self, responses=None):
        super().__init__(responses)
        self.worktrees = []

    def execute(self, args, cwd=None):
        if args[:2] == ["worktree", "list"]:
            self.calls.append((list(args), cwd))
            return "\n\n".join(
                f"worktree {path}\nHEAD {'a' * 40}\nbranch refs/heads/{branch}"
                for path, branch in self.worktrees
            )
        if args[:2] == ["worktree", "add"]:
            self.calls.append((list(args), cwd))
            self.worktrees.append((args[4], args[3]))
            return ""
        return super().execute(args, cwd)


def _git_error(*args):
    return GitError(list(args), "fatal: nope", 128)


class TestParseWorktreeList:
    """Tests for porcelain parsing."""

    def test_keeps_only_complete_entries(self):
        worktrees = parse_worktree_list(PORCELAIN)

        assert [(w.path, w.branch) for w in worktrees] == [
            ("/repo", "main"),
            ("/repo/.golem/worktrees/fix/INC-4521-login-bug", "fix/INC-4521-login-bug"),
        ]
        assert worktrees[1].commit_sha == "2" * 40

    def test_last_entry_without_trailing_blank_line(self):
        worktrees = parse_worktree_list("worktree /a\nHEAD abc\nbranch refs/heads/x")

        assert len(worktrees) == 1
        assert worktrees[0].branch == "x"

    def test_empty_output(self):
        assert parse_worktree_list("") == []


class TestWorktreeManager:
    """Tests for WorktreeManager against a fake git."""

    def test_discovers_repo_root(self):
        runner = FakeRunner({("rev-parse", "--show-toplevel"): "/srv/repo"})

        manager = WorktreeManager(runner=runner)

        assert manager.repo_root == Path("/srv/repo")

    def test_outside_repository_fails(self):
        runner = FakeRunner({("rev-parse", "--show-toplevel"): _git_error("rev-parse")})

        with pytest.raises(GitError):
            WorktreeManager(runner=runner)

    def test_default_branch_from_remote_head(self, tmp_path):
        runner = FakeRunner({("symbolic-ref",): "refs/remotes/origin/develop"})

        assert WorktreeManager(runner=runner, repo_root=tmp_path).default_branch() == "develop"

    def test_default_branch_falls_back_to_main(self, tmp_path):
        runner = FakeRunner({("symbolic-ref",): _git_error("symbolic-ref")})

        assert WorktreeManager(runner=runner, repo_root=tmp_path).default_branch() == "main"

    def test_default_branch_falls_back_to_master(self, tmp_path):
        runner = FakeRunner({
            ("symbolic-ref",): _git_error("symbolic-ref"),
            ("rev-parse", "--verify", "main"): _git_error("rev-parse"),
        })

        assert WorktreeManager(runner=runner, repo_root=tmp_path).default_branch() == "master"

    def test_default_branch_without_any_branch_fails(self, tmp_path):
        runner = FakeRunner({
            ("symbolic-ref",): _git_error("symbolic-ref"),
            ("rev-parse", "--verify"): _git_error("rev-parse"),
        })

        with pytest.raises(GitError):
            WorktreeManager(runner=runner, repo_root=tmp_path).default_branch()

    def test_create_adds_worktree_from_remote_base(self, tmp_path, ticket_factory):
        runner = WorktreeRunner({("symbolic-ref",): "refs/remotes/origin/main"})
        manager = WorktreeManager(runner=runner, repo_root=tmp_path)

        result = manager.create(ticket_factory())

        expected = str(tmp_path / ".golem/worktrees/fix/INC-4521-login-bug")
        assert result.path == expected
        assert result.created is True
        assert result.warnings == []
        assert (tmp_path / ".golem/worktrees").is_dir()
        assert ["fetch", "origin"] in runner.commands()
        assert ["worktree", "add", "-b", "fix/INC-4521-login-bug", expected, "origin/main"] in runner.commands()

    def test_create_twice_returns_same_path(self, tmp_path, ticket_factory):
        runner = WorktreeRunner()
        manager = WorktreeManager(runner=runner, repo_root=tmp_path)
        ticket = ticket_factory()

        first = manager.create(ticket, base_branch="main")
        second = manager.create(ticket, base_branch="main")

        assert second.path == first.path
        assert second.created is False
        adds = [c for c in runner.commands() if c[:2] == ["worktree", "add"]]
        assert len(adds) == 1

    def test_create_tolerates_fetch_failure(self, tmp_path, ticket_factory):
        runner = WorktreeRunner({("fetch",): _git_error("fetch")})
        manager = WorktreeManager(runner=runner, repo_root=tmp_path)

        result = manager.create(ticket_factory(), base_branch="release")

        assert result.created is True
        assert len(result.warnings) == 1
        assert "Fetch from origin failed" in result.warnings[0]
        assert runner.commands()[-1][-1] == "origin/release"

    def test_create_failure_raises(self, tmp_path, ticket_factory):
        runner = FakeRunner({("worktree", "add"): _git_error("worktree", "add")})
        manager = WorktreeManager(runner=runner, repo_root=tmp_path)

        with pytest.raises(GitError):
            manager.create(ticket_factory(), base_branch="main")

    def test_resolve_path_is_relative_to_repo_root(self, tmp_path):
        manager = WorktreeManager(runner=FakeRunner(), repo_root=tmp_path)

        assert manager.resolve_path(".golem/worktrees/fix/x") == tmp_path / ".golem/worktrees/fix/x"
        assert manager.resolve_path("/elsewhere/wt") == Path("/elsewhere/wt")

    def test_remove_missing_path_is_noop(self, tmp_path):
        runner = FakeRunner()
        manager = WorktreeManager(runner=runner, repo_root=tmp_path)

        assert manager.remove(".golem/worktrees/fix/gone") is False
        assert runner.calls == []

    def test_remove_forces_removal(self, tmp_path):
        path = tmp_path / ".golem/worktrees/fix/INC-1-x"
        path.mkdir(parents=True)
        runner = FakeRunner()
        manager = WorktreeManager(runner=runner, repo_root=tmp_path)

        assert manager.remove(path) is True
        assert runner.commands() == [["worktree", "remove", str(path), "--force"]]

    def test_commits_since_base(self, tmp_path):
        runner = FakeRunner({("log",): "ccc\nbbb\naaa"})
        manager = WorktreeManager(runner=runner, repo_root=tmp_path)

        commits = manager.commits_since_base("wt", base_branch="main")

        assert commits == ["ccc", "bbb", "aaa"]
        args, cwd = runner.calls[0]
        assert args == ["log", "origin/main..HEAD", "--format=%H"]
        assert cwd == tmp_path / "wt"

    def test_commits_since_base_empty(self, tmp_path):
        manager = WorktreeManager(runner=FakeRunner(), repo_root=tmp_path)

        assert manager.commits_since_base("wt", base_branch="main") == []

    def test_squash_resets_to_merge_base(self, tmp_path):
        runner = FakeRunner({
            ("log",): "ccc\nbbb\naaa",
            ("merge-base",): "base000",
            ("rev-parse", "HEAD"): "new111",
        })
        manager = WorktreeManager(runner=runner, repo_root=tmp_path)

        sha = manager.squash("wt", "fix: login bug", base_branch="main")

        assert sha == "new111"
        assert runner.commands()[1:] == [
            ["merge-base", "HEAD", "origin/main"],
            ["reset", "--soft", "base000"],
            ["commit", "-m", "fix: login bug"],
            ["rev-parse", "HEAD"],
        ]

    def test_squash_without_diverged_commits_keeps_head(self, tmp_path):
        runner = FakeRunner({("rev-parse", "HEAD"): "head000"})
        manager = WorktreeManager(runner=runner, repo_root=tmp_path)

        assert manager.squash("wt", "msg", base_branch="main") == "head000"
        assert not any(c[0] in ("reset", "commit") for c in runner.commands())

    def test_create_commit_nothing_staged(self, tmp_path):
        runner = FakeRunner()
        manager = WorktreeManager(runner=runner, repo_root=tmp_path)

        assert manager.create_commit("wt", "msg") == ""
        assert runner.commands() == [["add", "-A"], ["diff", "--cached", "--name-only"]]

    def test_create_commit(self, tmp_path):
        runner = FakeRunner({("diff",): "src/app.py", ("rev-parse", "HEAD"): "abc123"})
        manager = WorktreeManager(runner=runner, repo_root=tmp_path)

        assert manager.create_commit("wt", "feat: thing") == "abc123"
        assert ["commit", "-m", "feat: thing"] in runner.commands()

    @pytest.mark.parametrize("force,expected", [
        (False, ["push", "-u", "origin", "HEAD"]),
        (True, ["push", "-u", "origin", "HEAD", "--force-with-lease"]),
    ])
    def test_push(self, tmp_path, force, expected):
        runner = FakeRunner()
        manager = WorktreeManager(runner=runner, repo_root=tmp_path)

        manager.push("wt", force=force)

        assert runner.commands() == [expected]


def _git(*args, cwd):
    result = subprocess.run(["git", *args], cwd=cwd, capture_output=True, text=True, check=True)
    return result.stdout.strip()


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
class TestWorktreeManagerWithGit:
    """End-to-end tests against a real repository and a local bare remote."""

    @pytest.fixture
    def repo(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / ".config"))
        monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
        for var in ("GIT_AUTHOR_NAME", "GIT_COMMITTER_NAME"):
            monkeypatch.setenv(var, "Golem Test")
        for var in ("GIT_AUTHOR_EMAIL", "GIT_COMMITTER_EMAIL"):
            monkeypatch.setenv(var, "golem@example.com")

        origin = tmp_path / "origin.git"
        work = tmp_path / "work"
        _git("init", "--bare", str(origin), cwd=tmp_path)
        _git("clone", str(origin), str(work), cwd=tmp_path)
        _git("symbolic-ref", "HEAD", "refs/heads/main", cwd=work)
        (work / "README.md").write_text("hello\n")
        _git("add", "README.md", cwd=work)
        _git("commit", "-m", "initial", cwd=work)
        _git("push", "-u", "origin", "main", cwd=work)

        monkeypatch.chdir(work)
        return work

    def test_squash_collapses_diverged_commits(self, repo, ticket_factory):
        manager = WorktreeManager()
        ticket = ticket_factory()

        path = manager.create(ticket, base_branch="main").path
        for n in range(3):
            (Path(path) / f"change{n}.txt").write_text(f"{n}\n")
            assert manager.create_commit(path, f"wip {n}")
        assert manager.create_commit(path, "nothing") == ""
        assert len(manager.commits_since_base(path, base_branch="main")) == 3

        base_tip = _git("rev-parse", "origin/main", cwd=path)
        sha = manager.squash(path, "fix: login bug", base_branch="main")

        assert manager.commits_since_base(path, base_branch="main") == [sha]
        assert _git("rev-parse", f"{sha}^", cwd=path) == base_tip
        assert _git("log", "-1", "--format=%s", cwd=path) == "fix: login bug"
        assert sorted(p.name for p in Path(path).glob("change*.txt")) == [
            "change0.txt", "change1.txt", "change2.txt"
        ]

    def test_create_is_idempotent_and_remove_keeps_branch(self, repo, ticket_factory):
        manager = WorktreeManager()
        ticket = ticket_factory()

        first = manager.create(ticket, base_branch="main")
        second = manager.create(ticket, base_branch="main")

        assert first.created and not second.created
        assert Path(second.path).resolve() == Path(first.path).resolve()
        assert manager.current_branch(first.path) == "fix/INC-4521-login-bug"

        assert manager.remove(first.path) is True
        assert not Path(first.path).exists()
        assert manager.find_worktree(ticket.git.branch) is None
        _git("rev-parse", "--verify", ticket.git.branch, cwd=repo)
        assert manager.remove(first.path) is False
