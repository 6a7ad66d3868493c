import io
import os
import unittest
from unittest import mock

from rich.console import Console

from dropsh.cache import DirectoryCache
from dropsh.errors import BackendCommandFailed
from dropsh.paths import PathResolver
from dropsh.pipeline import FetchRunPipeline, quote_literal, render_command, shell_template
from fakes import FakeBackend, listing_text


class TestRenderCommand(unittest.TestCase):
    def test_appends_local_path_without_placeholder(self):
        self.assertEqual(render_command("cat", "/tmp/x", "/r/x"), "cat /tmp/x")

    def test_placeholders_substituted_and_escaped(self):
        self.assertEqual(
            render_command("cp {} out-{{}}", "/tmp/a b", "/r/c"),
            "cp '/tmp/a b' out-/r/c",
        )

    def test_remote_placeholder_alone_suppresses_append(self):
        self.assertEqual(render_command("echo {{}}", "/tmp/x", "/r/x"), "echo /r/x")

    def test_braces_inside_paths_not_resubstituted(self):
        self.assertEqual(
            render_command("diff {{}} {}", "/tmp/x", "/r/{}"), "diff '/r/{}' /tmp/x"
        )


class TestShellTemplate(unittest.TestCase):
    def test_tokens_quoted_placeholders_kept(self):
        self.assertEqual(shell_template(["grep", "a b", "{}"]), "grep 'a b' {}")

    def test_embedded_placeholders(self):
        self.assertEqual(shell_template(["--in={}", "--name={{}}.bak"]), "--in={} --name={{}}.bak")

    def test_empty_token(self):
        self.assertEqual(shell_template(["printf", ""]), "printf ''")

    def test_renders_to_single_words(self):
        template = shell_template(["tool", "--in={}"])
        self.assertEqual(render_command(template, "/tmp/a b", "/r"), "tool --in='/tmp/a b'")


class TestQuoteLiteral(unittest.TestCase):
    def test_quotes_like_shell(self):
        self.assertEqual(quote_literal("a b"), "'a b'")

    def test_braces_survive_rendering(self):
        template = f"grep {quote_literal('x{}y')} {{}}"
        self.assertEqual(render_command(template, "/tmp/f", "/r/f"), "grep 'x{''}y' /tmp/f")


class TestFetchRunPipeline(unittest.TestCase):
    def setUp(self):
        self.backend = FakeBackend(
            {"/docs": listing_text("/docs", [], {"a.txt": 5})},
            {"/docs/a.txt": b"hello"},
        )
        self.cache = DirectoryCache(self.backend)
        self.runner = mock.Mock()
        self.runner.run.return_value = 0
        self.out = io.StringIO()
        self.err = io.StringIO()
        self.pipeline = FetchRunPipeline(
            self.backend,
            PathResolver(self.cache),
            self.runner,
            Console(file=self.out, width=200),
            Console(file=self.err, width=200),
        )
        self.seen = []

    def record(self, command):
        local_path = command.split(" ", 1)[1]
        exists = os.path.exists(local_path)
        content = None
        if exists:
            with open(local_path, "rb") as f:
                content = f.read()
        self.seen.append((local_path, exists, content))
        return 0

    def test_view_fetches_runs_and_cleans_up(self):
        self.runner.run.side_effect = self.record
        status = self.pipeline.run_with_local_copy("/docs/a.txt", "cat")
        self.assertEqual(status, 0)
        local_path, existed, content = self.seen[0]
        self.assertTrue(existed)
        self.assertEqual(content, b"hello")
        self.assertTrue(local_path.endswith("a.txt"))
        self.assertFalse(os.path.exists(local_path))
        self.assertFalse(os.path.exists(os.path.dirname(local_path)))
        self.assertIn("Downloading", self.out.getvalue())
        self.assertNotIn("upload", self.backend.verbs())

    def test_silent_suppresses_backend_output(self):
        self.pipeline.run_with_local_copy("/docs/a.txt", "cat", silent=True)
        self.assertEqual(self.out.getvalue(), "")

    def test_scratch_removed_when_command_raises(self):
        def explode(command):
            self.record(command)
            raise RuntimeError("editor crashed")

        self.runner.run.side_effect = explode
        with self.assertRaises(RuntimeError):
            self.pipeline.run_with_local_copy("/docs/a.txt", "cat")
        self.assertFalse(os.path.exists(self.seen[0][0]))
        self.assertFalse(os.path.exists(os.path.dirname(self.seen[0][0])))

    def test_failed_fetch_still_runs_command(self):
        self.runner.run.side_effect = self.record
        self.pipeline.run_with_local_copy("/docs/missing.txt", "cat")
        local_path, existed, _ = self.seen[0]
        self.assertFalse(existed)
        self.assertFalse(os.path.exists(os.path.dirname(local_path)))
        self.assertIn("No such file: /docs/missing.txt", self.err.getvalue())

    def test_write_back_uploads_edits(self):
        def edit(command):
            local_path = command.split(" ", 1)[1]
            with open(local_path, "ab") as f:
                f.write(b" world")
            return 0

        self.runner.run.side_effect = edit
        self.cache.get("/docs")
        self.pipeline.run_with_local_copy("/docs/a.txt", "vi", write_back=True)
        self.assertEqual(self.backend.verbs(), ["list", "download", "upload"])
        self.assertEqual(self.backend.uploaded["/docs/a.txt"], b"hello world")
        self.assertNotIn("/docs", self.cache)

    def test_write_back_creates_missing_file(self):
        def create(command):
            with open(command.split(" ", 1)[1], "wb") as f:
                f.write(b"new")
            return 0

        self.runner.run.side_effect = create
        self.pipeline.run_with_local_copy("/docs/new.txt", "vi", write_back=True)
        self.assertNotIn("download", self.backend.verbs())
        self.assertEqual(self.backend.uploaded["/docs/new.txt"], b"new")

    def test_failed_upload_still_invalidates_parent(self):
        self.runner.run.side_effect = self.record
        self.cache.get("/docs")
        failure = BackendCommandFailed("upload", 1, "quota exceeded\n")
        with mock.patch.object(self.backend, "upload", side_effect=failure):
            with self.assertRaises(BackendCommandFailed):
                self.pipeline.run_with_local_copy("/docs/a.txt", "vi", write_back=True)
        self.assertNotIn("/docs", self.cache)
        self.assertFalse(os.path.exists(os.path.dirname(self.seen[0][0])))


if __name__ == '__main__':
    unittest.main()
