"""Grammar engine: curl command text to an ordered list of fragments.

The scanner works in a single forward pass over the text:

  - lines whose first non-blank character is ``#`` are comments
  - ``\\`` followed by a newline is a line continuation
  - an argument is a run of unquoted, ``'single'`` and ``"double"`` quoted
    segments; quoted segments may span lines
  - inside double quotes the escapes in :data:`ESCAPES` are translated,
    any other ``\\c`` is kept as the two characters
  - outside quotes ``\\c`` is the character ``c`` itself

Which flags exist and what they produce is declared in :data:`FLAG_RULES`;
everything else is a positional URL.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from curl_parser.errors import GrammarError

logger = logging.getLogger(__name__)

# Fragment kinds
METHOD = "method"
URL = "url"
LOCATION = "location"
HEADER = "header"
AUTH = "auth"
BODY = "body"
INSECURE = "insecure"
EOI = "eoi"

COMMAND_NAME = "curl"

ESCAPES = {
    '"': '"',
    "\\": "\\",
    "/": "/",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}

_BLANK = " \t\r\n"


@dataclass(frozen=True, slots=True)
class FlagRule:
    kind: str
    takes_value: bool = True


FLAG_RULES: dict[str, FlagRule] = {
    "-X": FlagRule(METHOD),
    "--request": FlagRule(METHOD),
    "-H": FlagRule(HEADER),
    "--header": FlagRule(HEADER),
    "-d": FlagRule(BODY),
    "--data": FlagRule(BODY),
    "--data-raw": FlagRule(BODY),
    "-u": FlagRule(AUTH),
    "--user": FlagRule(AUTH),
    "-L": FlagRule(LOCATION),
    "--location": FlagRule(LOCATION),
    "-k": FlagRule(INSECURE, takes_value=False),
    "--insecure": FlagRule(INSECURE, takes_value=False),
}


@dataclass(frozen=True, slots=True)
class Fragment:
    """One classified piece of a curl command.

    ``value`` is the argument with quotes removed and double-quote escapes
    translated; ``raw`` is the argument exactly as written. ``escaped`` is
    true when escape translation already ran over part of ``value``, and
    ``quoted`` is true when shell quotes were removed from it.
    """

    kind: str
    value: str = ""
    raw: str = ""
    line: int = 0
    col: int = 0
    escaped: bool = False
    quoted: bool = False


@dataclass(frozen=True, slots=True)
class _Word:
    value: str
    raw: str
    line: int
    col: int
    quoted: bool
    escaped: bool
    flag_like: bool


class _Scanner:
    """Splits curl text into shell-like words."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0
        self.line = 1
        self.col = 1
        self.at_line_start = True

    def _advance(self, count: int = 1) -> None:
        for ch in self.text[self.pos : self.pos + count]:
            if ch == "\n":
                self.line += 1
                self.col = 1
            else:
                self.col += 1
        self.pos += count

    def _continuation_length(self) -> int:
        """Length of a backslash-newline at the current position, or 0."""
        if self.text.startswith("\\\n", self.pos):
            return 2
        if self.text.startswith("\\\r\n", self.pos):
            return 3
        return 0

    def _skip_blank(self) -> None:
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if ch == "\n":
                self._advance()
                self.at_line_start = True
            elif ch in _BLANK:
                self._advance()
            elif ch == "#" and self.at_line_start:
                end = text.find("\n", self.pos)
                self._advance((len(text) if end == -1 else end) - self.pos)
            else:
                skip = self._continuation_length()
                if not skip:
                    return
                self._advance(skip)
                self.at_line_start = False

    def _read_single_quoted(self) -> str:
        line, col = self.line, self.col
        end = self.text.find("'", self.pos + 1)
        if end == -1:
            raise GrammarError("unterminated single quote", line=line, col=col)
        content = self.text[self.pos + 1 : end]
        self._advance(end + 1 - self.pos)
        return content

    def _read_double_quoted(self) -> str:
        line, col = self.line, self.col
        text = self.text
        out: list[str] = []
        self._advance()
        while self.pos < len(text):
            ch = text[self.pos]
            if ch == '"':
                self._advance()
                return "".join(out)
            if ch == "\\" and self.pos + 1 < len(text):
                nxt = text[self.pos + 1]
                out.append(ESCAPES.get(nxt, ch + nxt))
                self._advance(2)
                continue
            out.append(ch)
            self._advance()
        raise GrammarError("unterminated double quote", line=line, col=col)

    def next_word(self) -> _Word | None:
        self._skip_blank()
        text = self.text
        if self.pos >= len(text):
            return None

        start, line, col = self.pos, self.line, self.col
        self.at_line_start = False
        flag_like = text[start] == "-"
        quoted = escaped = False
        parts: list[str] = []
        while self.pos < len(text):
            ch = text[self.pos]
            if ch in _BLANK or self._continuation_length():
                break
            if ch == "'":
                parts.append(self._read_single_quoted())
                quoted = True
            elif ch == '"':
                parts.append(self._read_double_quoted())
                quoted = escaped = True
            elif ch == "\\" and self.pos + 1 < len(text):
                # Outside quotes a backslash takes the next character literally
                parts.append(text[self.pos + 1])
                self._advance(2)
                escaped = True
            else:
                parts.append(ch)
                self._advance()

        return _Word(
            value="".join(parts),
            raw=text[start : self.pos],
            line=line,
            col=col,
            quoted=quoted,
            escaped=escaped,
            flag_like=flag_like,
        )


def unescape(text: str) -> str:
    """Translate backslash escapes with :data:`ESCAPES`.

    Unknown escapes are kept as the two original characters.
    """
    out: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text):
            nxt = text[i + 1]
            out.append(ESCAPES.get(nxt, ch + nxt))
            i += 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def split_flag(word: str) -> tuple[str, str | None]:
    """Split a flag word into its name and an attached value, if any.

    ``--request=PUT`` and ``-XPUT`` both yield a name and ``"PUT"``.
    """
    if word.startswith("--"):
        name, sep, value = word.partition("=")
        return name, (value if sep else None)
    if len(word) > 2:
        return word[:2], word[2:]
    return word, None


def tokenize(text: str) -> list[Fragment]:
    """Turn curl command text into fragments, ending with an ``EOI`` fragment.

    Raises:
        GrammarError: On an unknown flag, an unterminated quote, a missing
            flag value, or text that holds no command at all.
    """
    scanner = _Scanner(text)
    fragments: list[Fragment] = []
    seen_any = False

    while True:
        word = scanner.next_word()
        if word is None:
            break
        if not seen_any:
            seen_any = True
            if word.value == COMMAND_NAME and not word.quoted:
                continue

        if not word.flag_like:
            fragments.append(
                Fragment(
                    URL, word.value, word.raw, word.line, word.col,
                    word.escaped, word.quoted,
                )
            )
            continue

        name, attached = split_flag(word.value)
        rule = FLAG_RULES.get(name)
        if rule is None:
            raise GrammarError(
                f"unknown flag {name!r}", line=word.line, col=word.col
            )

        if not rule.takes_value:
            if attached is not None:
                raise GrammarError(
                    f"flag {name} does not take a value", line=word.line, col=word.col
                )
            fragments.append(Fragment(rule.kind, "", word.raw, word.line, word.col))
            continue

        if attached is not None:
            raw = word.raw[len(name) :].removeprefix("=")
            fragments.append(
                Fragment(
                    rule.kind, attached, raw, word.line, word.col,
                    word.escaped, word.quoted,
                )
            )
            continue

        arg = scanner.next_word()
        if arg is None:
            raise GrammarError(
                f"flag {name} requires a value", line=word.line, col=word.col
            )
        fragments.append(
            Fragment(
                rule.kind, arg.value, arg.raw, arg.line, arg.col,
                arg.escaped, arg.quoted,
            )
        )

    if not seen_any:
        raise GrammarError("expected a curl command, got empty input", line=1, col=1)

    fragments.append(Fragment(EOI, line=scanner.line, col=scanner.col))
    logger.debug("Tokenized %d fragments", len(fragments))
    return fragments
