import threading
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from commitsmith.vcs.git_client import GitClient, GitError, GitLockError, count_changed_lines


class DummyProc(SimpleNamespace):
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""


STATUS_OUTPUT = (
    " M modified_file.py\n"
    "A  added_file.py\n"
    "D  deleted_file.py\n"
    "R  renamed_old.py -> renamed_new.py\n"
    " D gone.py\n"
    "?? untracked.txt\n"
    '?? "with space.txt"\n'
)

UNTRACKED_DIFF = (
    "diff --git a/untracked.txt b/untracked.txt\n"
    "new file mode 100644\n"
    "--- /dev/null\n"
    "+++ b/untracked.txt\n"
    "@@ -0,0 +1,2 @@\n"
    "+first\n"
    "+second\n"
)


class TestGitClient(unittest.TestCase):
    def test_get_status_parses_porcelain_output(self) -> None:
        def fake_run(self, args, check=True):
            if args[0] == "status":
                return DummyProc(returncode=0, stdout=STATUS_OUTPUT, stderr="")
            raise AssertionError(f"Unexpected git command: {args}")

        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = fake_run
            status = GitClient(Path("/repo")).get_status()

        self.assertEqual(status.unstaged, ["modified_file.py"])
        self.assertEqual(status.staged, ["added_file.py", "deleted_file.py", "renamed_new.py"])
        self.assertEqual(status.deleted, ["deleted_file.py", "gone.py"])
        self.assertEqual(status.untracked, ["untracked.txt", "with space.txt"])
        self.assertEqual(status.renamed, [("renamed_old.py", "renamed_new.py")])
        self.assertEqual(status.renamed_from("renamed_new.py"), "renamed_old.py")

    def test_get_unstaged_files_lists_each_file_once(self) -> None:
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.return_value = DummyProc(returncode=0, stdout=STATUS_OUTPUT, stderr="")
            files = GitClient(Path("/repo")).get_unstaged_files()
        self.assertEqual(
            files,
            ["modified_file.py", "untracked.txt", "with space.txt", "deleted_file.py", "gone.py"],
        )

    def test_untracked_file_is_diffed_against_dev_null(self) -> None:
        calls = []

        def fake_run(self, args, check=True):
            calls.append((args, check))
            if args[0] == "status":
                return DummyProc(returncode=0, stdout="?? untracked.txt\n", stderr="")
            return DummyProc(returncode=1, stdout=UNTRACKED_DIFF, stderr="")

        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = fake_run
            diff = GitClient(Path("/repo")).get_file_diff("untracked.txt")

        self.assertIn((["diff", "--no-index", "--", "/dev/null", "untracked.txt"], False), calls)
        self.assertTrue(diff.is_new)
        self.assertEqual((diff.additions, diff.deletions), (2, 0))

    def test_untracked_diff_failure_raises(self) -> None:
        def fake_run(self, args, check=True):
            if args[0] == "status":
                return DummyProc(returncode=0, stdout="?? broken.txt\n", stderr="")
            return DummyProc(returncode=2, stdout="", stderr="fatal: cannot read")

        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = fake_run
            with self.assertRaises(GitError):
                GitClient(Path("/repo")).get_file_diff("broken.txt")

    def test_tracked_file_diff_reports_status_flags(self) -> None:
        def fake_run(self, args, check=True):
            if args[0] == "status":
                return DummyProc(returncode=0, stdout=STATUS_OUTPUT, stderr="")
            return DummyProc(returncode=0, stdout="@@ -1 +1 @@\n-a\n+b\n", stderr="")

        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = fake_run
            client = GitClient(Path("/repo"))
            renamed = client.get_file_diff("renamed_new.py")
            deleted = client.get_file_diff("gone.py")

        self.assertTrue(renamed.is_renamed)
        self.assertEqual(renamed.old_path, "renamed_old.py")
        self.assertTrue(deleted.is_deleted)
        self.assertFalse(deleted.is_new)

    def test_stage_file_uses_add_or_rm(self) -> None:
        calls = []

        def fake_run(self, args, check=True):
            calls.append(args)
            return DummyProc(returncode=0, stdout="", stderr="")

        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = fake_run
            client = GitClient(Path("/tmp/repo"))
            with patch("pathlib.Path.exists", lambda self: self.name != "file_deleted.py"):
                client.stage_file("file_exists.py")
                client.stage_file("file_deleted.py")
        self.assertEqual(
            calls,
            [["add", "--", "file_exists.py"], ["rm", "--ignore-unmatch", "--", "file_deleted.py"]],
        )

    def test_commit_limits_to_paths(self) -> None:
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.return_value = DummyProc(returncode=0, stdout="", stderr="")
            client = GitClient(Path("/repo"))
            client.commit("Updated app.py file with code improvements", paths=["app.py"])
            client.commit("Initial commit")
        args = [call.args[1] for call in mock_run.call_args_list]
        self.assertEqual(args[0], ["commit", "-m", "Updated app.py file with code improvements", "--", "app.py"])
        self.assertEqual(args[1], ["commit", "-m", "Initial commit"])

    def test_run_raises_git_error_on_failure(self) -> None:
        with patch("commitsmith.vcs.git_client.subprocess.run") as mock_run:
            mock_run.return_value = DummyProc(returncode=128, stdout="", stderr="fatal: not a git repository")
            with self.assertRaises(GitError) as ctx:
                GitClient(Path("/repo"))._run(["status"])
        self.assertIn("not a git repository", str(ctx.exception))

    def test_run_wraps_missing_executable(self) -> None:
        with patch("commitsmith.vcs.git_client.subprocess.run", side_effect=FileNotFoundError("git")):
            with self.assertRaises(GitError):
                GitClient(Path("/repo"))._run(["status"])

    def test_push_with_upstream(self) -> None:
        calls = []

        def fake_run(self, args, check=True):
            calls.append(args)
            return DummyProc(returncode=0, stdout="main\n", stderr="")

        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = fake_run
            GitClient(Path("/repo")).push(set_upstream=True)
        self.assertEqual(calls[-1], ["push", "--set-upstream", "origin", "main"])


def test_count_changed_lines_ignores_headers():
    diff_text = (
        "diff --git a/x.py b/x.py\n"
        "--- a/x.py\n"
        "+++ b/x.py\n"
        "@@ -1,2 +1,2 @@\n"
        "-old\n"
        "+new\n"
        "+extra\n"
        " context\n"
    )
    assert count_changed_lines(diff_text) == (2, 1)


def test_find_repo_root_walks_upwards(tmp_path):
    (tmp_path / ".git").mkdir()
    nested = tmp_path / "src" / "pkg"
    nested.mkdir(parents=True)
    assert GitClient.find_repo_root(nested) == tmp_path.resolve()
    assert GitClient.is_repo(tmp_path)


def test_wait_for_index_lock_returns_when_lock_is_released(tmp_path):
    git_dir = tmp_path / ".git"
    git_dir.mkdir()
    lock = git_dir / "index.lock"
    lock.write_text("")

    timer = threading.Timer(0.05, lock.unlink)
    timer.start()
    try:
        GitClient(tmp_path).wait_for_index_lock(timeout=0.25)
    finally:
        timer.cancel()
    assert not lock.exists()


def test_wait_for_index_lock_raises_with_guidance(tmp_path):
    git_dir = tmp_path / ".git"
    git_dir.mkdir()
    (git_dir / "index.lock").write_text("")

    with pytest.raises(GitLockError) as excinfo:
        GitClient(tmp_path).wait_for_index_lock(timeout=0.05)
    assert "index.lock" in str(excinfo.value)
    assert "Another Git process" in str(excinfo.value)


def test_wait_for_index_lock_without_lock_is_immediate(tmp_path):
    (tmp_path / ".git").mkdir()
    GitClient(tmp_path).wait_for_index_lock(timeout=0.0)
