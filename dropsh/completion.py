"""Tab completion for command names and remote paths"""

import logging
import posixpath
import shlex
from typing import Iterable, List

from prompt_toolkit.completion import Completer, Completion

from .errors import DropshError
from .paths import PathResolver

logger = logging.getLogger(__name__)

# Appended to a lone directory candidate so the line editor keeps it open
ELLIPSIS = "..."
DIR_ONLY_COMMANDS = frozenset({"cd"})


def tokenize(buffer: str) -> List[str]:
    """Split a partial command line, closing a dangling quote if needed"""
    for closer in ("", '"', "'"):
        try:
            return shlex.split(buffer + closer)
        except ValueError:
            continue
    raise ValueError(f"unbalanced quoting in {buffer!r}")


def _starts_new_token(buffer: str) -> bool:
    return len(tokenize(buffer + "_")) > len(tokenize(buffer))


def complete(
    buffer: str,
    cwd: str,
    cache,
    command_names: Iterable[str],
    dir_only_commands=DIR_ONLY_COMMANDS,
) -> List[str]:
    """Ordered completion candidates for the full input buffer.

    The first token completes against command_names; any later token
    completes as a remote path relative to cwd. The only side effect is the
    cache filling in a listing it did not have yet. Errors yield [].

    Args:
        buffer: Input line up to the cursor
        cwd: Session's remote current directory
        cache: DirectoryCache used to look up listings
        command_names: Registered command names, in the order to offer them
        dir_only_commands: Commands whose arguments are directories only
    """
    try:
        tokens = tokenize(buffer)
        new_token = _starts_new_token(buffer)
        if not tokens or (len(tokens) == 1 and not new_token):
            prefix = tokens[0] if tokens else ""
            return [name for name in command_names if name.startswith(prefix)]

        word = "" if new_token else tokens[-1]
        return complete_path(cache, cwd, word, tokens[0] in dir_only_commands)
    except (DropshError, ValueError) as e:
        logger.debug("completion failed for %r: %s", buffer, e)
        return []


def complete_path(cache, cwd: str, word: str, dir_only: bool = False) -> List[str]:
    """Candidates for one partially typed remote path"""
    if word.endswith("/"):
        head, prefix = word, ""
    else:
        head, prefix = posixpath.dirname(word), posixpath.basename(word)
    directory = head.rstrip("/") or ("/" if head else ".")

    snapshot = cache.get(PathResolver.absolute(directory, cwd))

    results = [name + "/" for name in snapshot.directories if name.startswith(prefix)]
    exactly_one_dir = len(results) == 1
    if not dir_only:
        results.extend(name for name in snapshot.files if name.startswith(prefix))

    if len(results) == 1 and exactly_one_dir:
        results = [results[0], results[0] + ELLIPSIS]

    # Only ever extend what was typed, never rewrite it to a bare basename
    if "/" not in word:
        shown = ""
    elif directory == "/":
        shown = "/"
    else:
        shown = directory + "/"
    return [shown + result for result in results]


def last_raw_word(text: str) -> str:
    """Raw (still quoted) text of the word under the cursor"""
    start = 0
    quote = None
    escaped = False
    for i, char in enumerate(text):
        if escaped:
            escaped = False
        elif char == "\\" and quote != "'":
            escaped = True
        elif quote:
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
        elif char.isspace():
            start = i + 1
    return text[start:]


class DropshCompleter(Completer):
    """prompt_toolkit adapter reading live session state on every request"""

    def __init__(self, handler):
        self.handler = handler

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor
        candidates = complete(
            text, self.handler.remote_cwd, self.handler.cache, self.handler.command_names
        )
        replaced = last_raw_word(text)
        for candidate in candidates:
            # prompt_toolkit does not terminate a lone candidate with a space
            if candidate.endswith(ELLIPSIS) and candidate[: -len(ELLIPSIS)] in candidates:
                continue
            display = posixpath.basename(candidate.rstrip("/")) or candidate
            if candidate.endswith("/"):
                display += "/"
            yield Completion(
                shlex.quote(candidate),
                start_position=-len(replaced),
                display=display,
            )
