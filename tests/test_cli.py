import os
import unittest
from unittest import mock

from click.testing import CliRunner

from dropsh import cli
from dropsh.config import Config
from dropsh.version import get_version_string


class TestReplLoop(unittest.TestCase):
    def test_runs_until_end_of_input(self):
        handler = mock.Mock()
        lines = iter(["ls", "cd photos", "exit"])

        def read_line():
            try:
                return next(lines)
            except StopIteration:
                raise EOFError

        cli.repl_loop(handler, read_line)
        self.assertEqual(
            [c[0][0] for c in handler.execute.call_args_list], ["ls", "cd photos", "exit"]
        )

    def test_interrupts_do_not_end_session(self):
        handler = mock.Mock()
        handler.execute.side_effect = [KeyboardInterrupt, None]
        read_line = mock.Mock(side_effect=["vi a.txt", KeyboardInterrupt, "ls", EOFError])
        cli.repl_loop(handler, read_line)
        self.assertEqual(handler.execute.call_count, 2)
        self.assertEqual(read_line.call_count, 4)


class TestPrompt(unittest.TestCase):
    def test_prompt_shows_both_directories(self):
        handler = mock.Mock()
        handler.remote_cwd = "/photos/2019"
        handler.local_cwd = "/srv/data"
        text = "".join(fragment[1] for fragment in cli.prompt_fragments(handler))
        self.assertEqual(text, "/srv/data dropbox:/photos/2019$ ")

    def test_prompt_abbreviates_home(self):
        handler = mock.Mock()
        handler.remote_cwd = "/"
        handler.local_cwd = os.path.join(os.path.expanduser("~"), "pics")
        text = "".join(fragment[1] for fragment in cli.prompt_fragments(handler))
        self.assertTrue(text.startswith("~" + os.sep + "pics "))


class TestMain(unittest.TestCase):
    def test_version(self):
        result = CliRunner().invoke(cli.main, ["--version"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn(get_version_string(), result.output)

    def test_options_reach_config(self):
        with mock.patch.object(cli, "start_repl") as start_repl:
            result = CliRunner().invoke(
                cli.main, ["--backend", "/opt/up.sh", "--editor", "nano", "-v"]
            )
        self.assertEqual(result.exit_code, 0, result.output)
        config = start_repl.call_args[0][0]
        self.assertEqual(config.backend, "/opt/up.sh")
        self.assertEqual(config.editor, "nano")
        self.assertEqual(config.log_level, "DEBUG")


class TestConfig(unittest.TestCase):
    def test_environment_defaults(self):
        env = {
            "DROPSH_BACKEND": "my-backend",
            "EDITOR": "emacs",
            "SHELL": "/bin/zsh",
            "DROPSH_HISTFILE": "/tmp/hist",
            "DROPSH_LOG_LEVEL": "info",
        }
        with mock.patch.dict(os.environ, env):
            config = Config.from_env()
        self.assertEqual(config.backend, "my-backend")
        self.assertEqual(config.editor, "emacs")
        self.assertEqual(config.shell, "/bin/zsh")
        self.assertEqual(config.history_file, "/tmp/hist")
        self.assertEqual(config.log_level, "INFO")

    def test_builtin_defaults(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            config = Config()
        self.assertEqual(config.backend, "dropbox_uploader.sh")
        self.assertEqual(config.editor, "vi")
        self.assertEqual(config.shell, "bash")
        self.assertEqual(config.log_level, "WARNING")

    def test_args_override_env(self):
        with mock.patch.dict(os.environ, {"DROPSH_BACKEND": "env-backend"}):
            config = Config.from_args(backend="arg-backend", history_file="~/h")
        self.assertEqual(config.backend, "arg-backend")
        self.assertEqual(config.history_file, os.path.expanduser("~/h"))


if __name__ == '__main__':
    unittest.main()
