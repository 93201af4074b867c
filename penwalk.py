#!/usr/bin/env python3
"""penwalk.py

An interactive pen-walk interpreter that draws on a text canvas.

Key features:
- One-character instruction language (move, mark, clean, pen up/down).
- Canvas that grows vertically and scrolls horizontally.
- Repetition prefix (\\N) and help/quit directives.
- Configurable instruction table and palette via JSON.

Run:
  python penwalk.py run
  python penwalk.py run script.txt --width 40
  python penwalk.py validate config.json
  python penwalk.py --help
"""

from __future__ import annotations

import argparse
import enum
import json
import sys
from collections import deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from typing import Any, TextIO, cast

# -------------------------
# Errors / Validation
# -------------------------


class ConfigError(ValueError):
    pass


class ErrorKind(enum.Enum):
    PARSE = "Parse error"
    ASSEMBLY = "Assembly error"
    CONSTRUCTION = "Construction error"


class PenError(ValueError):
    """A recoverable failure while building a canvas or handling one line.

    ``kind`` tells the caller what went wrong; ``symbol`` is set for assembly
    errors and names the character no instruction recognized.
    """

    def __init__(
        self, kind: ErrorKind, detail: str = "", *, symbol: str | None = None
    ) -> None:
        self.kind = kind
        self.detail = detail
        self.symbol = symbol
        super().__init__(self.diagnostic())

    def diagnostic(self) -> str:
        if self.kind is ErrorKind.ASSEMBLY:
            return f"{self.kind.value}: unrecognized instruction {self.symbol!r}"
        if self.detail:
            return f"{self.kind.value}: {self.detail}"
        return self.kind.value


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigError(msg)


def _as_int(x: Any, path: str) -> int:
    _require(
        isinstance(x, int) and not isinstance(x, bool), f"{path} must be an integer"
    )
    return int(x)


def _as_str(x: Any, path: str) -> str:
    _require(isinstance(x, str), f"{path} must be a string")
    return cast(str, x)


def _as_glyph(x: Any, path: str) -> str:
    s = _as_str(x, path)
    _require(len(s) == 1, f"{path} must be a single character")
    return s


def _as_dict(x: Any, path: str) -> dict[str, Any]:
    _require(isinstance(x, dict), f"{path} must be an object")
    return cast(dict[str, Any], x)


# -------------------------
# Canvas
# -------------------------


class Pen(enum.Enum):
    UP = "up"
    DOWN = "down"


class Op(enum.Enum):
    MARK = "mark"
    CLEAN = "clean"
    PEN_UP = "pen_up"
    PEN_DOWN = "pen_down"
    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"
    NORTHEAST = "northeast"
    NORTHWEST = "northwest"
    SOUTHEAST = "southeast"
    SOUTHWEST = "southwest"


DEFAULT_WIDTH = 70
DEFAULT_BACKGROUND = " "
DEFAULT_FOREGROUND = "*"
DEFAULT_CURSOR = "X"


class Canvas:
    """A fixed-width grid of marked/unmarked cells with a pen-carrying cursor.

    Moving north off the top row or south off the bottom row adds a blank row,
    so height is unbounded and only ever grows. Moving east or west past an
    edge scrolls every row by one cell instead; the cursor stays pinned at the
    edge and the column that falls off the far side is lost.
    """

    def __init__(
        self,
        width: int = DEFAULT_WIDTH,
        *,
        background: str = DEFAULT_BACKGROUND,
        foreground: str = DEFAULT_FOREGROUND,
        cursor: str = DEFAULT_CURSOR,
        pen: Pen = Pen.UP,
    ) -> None:
        if width <= 0:
            raise PenError(
                ErrorKind.CONSTRUCTION, f"canvas width must be > 0, got {width}"
            )
        for name, glyph in (
            ("background", background),
            ("foreground", foreground),
            ("cursor", cursor),
        ):
            if len(glyph) != 1:
                raise PenError(
                    ErrorKind.CONSTRUCTION,
                    f"{name} glyph must be a single character, got {glyph!r}",
                )

        self._width = width
        self._rows: deque[deque[bool]] = deque([self._blank_row()])
        self._x = width // 2
        self._y = 0
        self._pen = pen
        self.background = background
        self.foreground = foreground
        self.cursor_glyph = cursor

        self._dispatch = {
            Op.MARK: self.mark,
            Op.CLEAN: self.clean,
            Op.PEN_UP: self.pen_up,
            Op.PEN_DOWN: self.pen_down,
            Op.NORTH: self.north,
            Op.SOUTH: self.south,
            Op.EAST: self.east,
            Op.WEST: self.west,
            Op.NORTHEAST: self.northeast,
            Op.NORTHWEST: self.northwest,
            Op.SOUTHEAST: self.southeast,
            Op.SOUTHWEST: self.southwest,
        }

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return len(self._rows)

    @property
    def cursor(self) -> tuple[int, int]:
        return (self._x, self._y)

    @property
    def pen(self) -> Pen:
        return self._pen

    def is_marked(self, x: int, y: int) -> bool:
        return self._rows[y][x]

    def rows(self) -> list[tuple[bool, ...]]:
        return [tuple(row) for row in self._rows]

    # Instructions

    def mark(self) -> None:
        self._rows[self._y][self._x] = True

    def clean(self) -> None:
        self._rows[self._y][self._x] = False

    def pen_up(self) -> None:
        self._pen = Pen.UP

    def pen_down(self) -> None:
        self._pen = Pen.DOWN
        self.mark()

    def north(self) -> None:
        self._step_north()
        self._update()

    def south(self) -> None:
        self._step_south()
        self._update()

    def east(self) -> None:
        self._step_east()
        self._update()

    def west(self) -> None:
        self._step_west()
        self._update()

    def northeast(self) -> None:
        self._step_north()
        self._step_east()
        self._update()

    def northwest(self) -> None:
        self._step_north()
        self._step_west()
        self._update()

    def southeast(self) -> None:
        self._step_south()
        self._step_east()
        self._update()

    def southwest(self) -> None:
        self._step_south()
        self._step_west()
        self._update()

    def apply(self, op: Op) -> None:
        self._dispatch[op]()

    def render(self) -> str:
        lines: list[str] = []
        for y, row in enumerate(self._rows):
            chars = [self._peek(x, y, cell) for x, cell in enumerate(row)]
            lines.append("".join(chars))
            lines.append("\n")
        return "".join(lines)

    # Internals

    def _blank_row(self) -> deque[bool]:
        return deque([False] * self._width)

    def _peek(self, x: int, y: int, cell: bool) -> str:
        if x == self._x and y == self._y:
            return self.cursor_glyph
        return self.foreground if cell else self.background

    def _update(self) -> None:
        # Drawing: every arrival leaves a mark while the pen is down.
        if self._pen is Pen.DOWN:
            self.mark()

    def _step_north(self) -> None:
        if self._y == 0:
            self._rows.appendleft(self._blank_row())
        else:
            self._y -= 1

    def _step_south(self) -> None:
        self._y += 1
        if self._y == len(self._rows):
            self._rows.append(self._blank_row())

    def _step_east(self) -> None:
        if self._x == self._width - 1:
            for row in self._rows:
                row.popleft()
                row.append(False)
        else:
            self._x += 1

    def _step_west(self) -> None:
        if self._x == 0:
            for row in self._rows:
                row.pop()
                row.appendleft(False)
        else:
            self._x -= 1


# -------------------------
# Assembler
# -------------------------


@dataclass(frozen=True)
class Instruction:
    description: str
    symbols: frozenset[str]
    op: Op


InstructionTable = tuple[Instruction, ...]


def default_instructions() -> InstructionTable:
    return (
        Instruction("Mark the current cell", frozenset("m"), Op.MARK),
        Instruction("Clean the current cell", frozenset("c"), Op.CLEAN),
        Instruction("Lift the pen", frozenset("u"), Op.PEN_UP),
        Instruction("Put the pen down (and mark)", frozenset("d"), Op.PEN_DOWN),
        Instruction("Move north", frozenset("n8"), Op.NORTH),
        Instruction("Move south", frozenset("s2"), Op.SOUTH),
        Instruction("Move east", frozenset("e6"), Op.EAST),
        Instruction("Move west", frozenset("w4"), Op.WEST),
        Instruction("Move northeast", frozenset("o9"), Op.NORTHEAST),
        Instruction("Move northwest", frozenset("i7"), Op.NORTHWEST),
        Instruction("Move southeast", frozenset("l3"), Op.SOUTHEAST),
        Instruction("Move southwest", frozenset("k1"), Op.SOUTHWEST),
    )


def assemble(script: str, table: Sequence[Instruction]) -> list[Op]:
    """Translate instruction symbols into opcodes, skipping whitespace.

    The first instruction whose symbol set contains a character wins. Any
    character without an instruction fails the whole script.
    """
    ops: list[Op] = []
    for ch in script:
        if ch.isspace():
            continue
        for instruction in table:
            if ch in instruction.symbols:
                ops.append(instruction.op)
                break
        else:
            raise PenError(ErrorKind.ASSEMBLY, symbol=ch)
    return ops


USAGE_LINES = (
    "Prefix a script with \\N to run it N times (e.g. \\3 ne).",
    "Enter ? or \\h for this help, \\q to quit.",
)


def format_help(table: Sequence[Instruction]) -> str:
    col = max((len(ins.description) for ins in table), default=0)
    lines = [
        f"  {ins.description:<{col}}  {' '.join(sorted(ins.symbols))}"
        for ins in table
    ]
    lines.append("")
    lines.extend(USAGE_LINES)
    return "\n".join(lines) + "\n"


# -------------------------
# Interpreter loop
# -------------------------


class Action(enum.Enum):
    RUN = "run"
    HELP = "help"
    QUIT = "quit"


@dataclass(frozen=True)
class Command:
    action: Action
    count: int = 1
    script: str = ""


def parse_line(line: str) -> Command:
    """Split an input line into its directive and the script that follows.

    Grammar: ``[ '?' | '\\' SPECIAL | '\\' COUNT ] SYMBOLS``.
    """
    line = line.rstrip("\r\n")

    if line.startswith("?"):
        return Command(Action.HELP)
    if not line.startswith("\\"):
        return Command(Action.RUN, 1, line)

    rest = line[1:]
    if rest[:1] in ("h", "H", "?"):
        return Command(Action.HELP)
    if rest[:1] in ("q", "Q"):
        return Command(Action.QUIT)

    end = 0
    while end < len(rest) and rest[end] in "0123456789":
        end += 1
    if end == 0:
        raise PenError(ErrorKind.PARSE, "malformed prefix")
    return Command(Action.RUN, int(rest[:end]), rest[end:])


DEFAULT_PROMPT = "? "
DIRECTIVE_CHARS = frozenset("?\\")


class Interpreter:
    """Read-assemble-execute-render loop over a single canvas."""

    def __init__(
        self,
        canvas: Canvas,
        table: Sequence[Instruction],
        *,
        out: TextIO,
        err: TextIO,
        prompt: str = DEFAULT_PROMPT,
        initial_frame: bool = True,
    ) -> None:
        self.canvas = canvas
        self.table = tuple(table)
        self.out = out
        self.err = err
        self.prompt = prompt
        self.initial_frame = initial_frame

    def execute(self, line: str) -> bool:
        """Handle one line; return False once the session should end."""
        try:
            cmd = parse_line(line)
            if cmd.action is Action.QUIT:
                return False
            if cmd.action is Action.HELP:
                self.out.write(format_help(self.table))
                return True
            ops = assemble(cmd.script, self.table)
        except PenError as e:
            print(e.diagnostic(), file=self.err)
            return True

        if ops:
            for _ in range(cmd.count):
                for op in ops:
                    self.canvas.apply(op)
        self.out.write("\n")
        self.out.write(self.canvas.render())
        return True

    def run(self, lines: Iterable[str]) -> None:
        """Execute lines until input runs out or a quit directive is read."""
        if self.initial_frame:
            self.out.write("\n")
            self.out.write(self.canvas.render())

        it = iter(lines)
        while True:
            self._prompt()
            line = next(it, None)
            if line is None or not self.execute(line):
                return

    def _prompt(self) -> None:
        if self.prompt:
            self.out.write("\n" + self.prompt)
            self.out.flush()


# -------------------------
# Config parsing
# -------------------------


@dataclass(frozen=True)
class SessionConfig:
    width: int = DEFAULT_WIDTH
    background: str = DEFAULT_BACKGROUND
    foreground: str = DEFAULT_FOREGROUND
    cursor: str = DEFAULT_CURSOR
    prompt: str = DEFAULT_PROMPT
    instructions: InstructionTable = default_instructions()


def parse_instructions(obj: dict[str, Any]) -> InstructionTable:
    """Rebind symbols of the default table; ops not listed keep their symbols."""
    obj = _as_dict(obj, "instructions")
    known = {op.value: op for op in Op}
    overrides: dict[Op, frozenset[str]] = {}
    for name, symbols in obj.items():
        _require(
            name in known,
            f"instructions key {name!r} must be one of: {', '.join(known)}",
        )
        s = _as_str(symbols, f"instructions['{name}']")
        _require(len(s) > 0, f"instructions['{name}'] must be non-empty")
        _require(
            not any(ch.isspace() for ch in s),
            f"instructions['{name}'] must not contain whitespace",
        )
        _require(
            not any(ch in DIRECTIVE_CHARS for ch in s),
            f"instructions['{name}'] must not use the directive characters ? or \\",
        )
        overrides[known[name]] = frozenset(s)

    table = tuple(
        Instruction(ins.description, overrides.get(ins.op, ins.symbols), ins.op)
        for ins in default_instructions()
    )

    owner: dict[str, Op] = {}
    for ins in table:
        for ch in sorted(ins.symbols):
            if ch in owner:
                raise ConfigError(
                    f"symbol {ch!r} is bound to both {owner[ch].value} "
                    f"and {ins.op.value}"
                )
            owner[ch] = ins.op
    return table


def parse_config(obj: dict[str, Any]) -> SessionConfig:
    obj = _as_dict(obj, "root")

    width = _as_int(obj.get("width", DEFAULT_WIDTH), "width")
    _require(width > 0, "width must be > 0")

    palette = _as_dict(obj.get("palette", {}), "palette")
    background = _as_glyph(
        palette.get("background", DEFAULT_BACKGROUND), "palette.background"
    )
    foreground = _as_glyph(
        palette.get("foreground", DEFAULT_FOREGROUND), "palette.foreground"
    )
    cursor = _as_glyph(palette.get("cursor", DEFAULT_CURSOR), "palette.cursor")

    prompt = _as_str(obj.get("prompt", DEFAULT_PROMPT), "prompt")
    instructions = parse_instructions(obj.get("instructions", {}))

    return SessionConfig(
        width=width,
        background=background,
        foreground=foreground,
        cursor=cursor,
        prompt=prompt,
        instructions=instructions,
    )


def load_json(path: str) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        try:
            return cast(dict[str, Any], json.load(f))
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from e


def build_canvas(cfg: SessionConfig) -> Canvas:
    return Canvas(
        cfg.width,
        background=cfg.background,
        foreground=cfg.foreground,
        cursor=cfg.cursor,
    )


# -------------------------
# CLI / Help
# -------------------------

HELP_EPILOG = r"""
SCRIPT SYNTAX (run)

Each input line is one script, optionally preceded by a directive:

  ?            show the instruction table
  \h \H \?     show the instruction table
  \q \Q        quit
  \N SYMBOLS   run SYMBOLS N times (N is a non-negative integer)
  SYMBOLS      run SYMBOLS once

Whitespace between symbols is ignored. A line with any unknown symbol is
rejected as a whole and leaves the canvas untouched. After every successful
script the canvas is printed; X marks the cursor.

Default instructions

  m      mark the current cell
  c      clean the current cell
  u      lift the pen
  d      put the pen down (marks the current cell)
  n 8    north        s 2    south
  e 6    east         w 4    west
  o 9    northeast    i 7    northwest
  l 3    southeast    k 1    southwest

While the pen is down every move marks the cell it arrives at. Moving past the
top or bottom adds a row; moving past the left or right edge scrolls the
drawing sideways and the cursor stays at the edge.

CONFIG JSON (--config, validate)

  width: integer > 0 (default 70)
  palette: {"background": " ", "foreground": "*", "cursor": "X"}
  prompt: string (default "? ")
  instructions: object mapping an op name to its symbols, e.g.
      {"north": "nk", "southwest": "1"}
      Op names: mark, clean, pen_up, pen_down, north, south, east, west,
      northeast, northwest, southeast, southwest. Ops not listed keep their
      default symbols; a symbol may only be bound to one op. The directive
      characters ? and \ cannot be bound.
"""


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="penwalk.py",
        description="Interactive pen-walk interpreter drawing on a text canvas.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=HELP_EPILOG,
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    pr = sub.add_parser(
        "run",
        help="Read scripts from a file or stdin and draw.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    pr.add_argument(
        "script",
        nargs="?",
        default="-",
        help="Path to a script file, one script per line. Default: stdin.",
    )
    pr.add_argument("--config", default=None, help="Path to a JSON config.")
    pr.add_argument("--width", type=int, default=None, help="Canvas width.")
    pr.add_argument("--background", default=None, help="Unmarked cell glyph.")
    pr.add_argument("--foreground", default=None, help="Marked cell glyph.")
    pr.add_argument("--cursor", default=None, help="Cursor glyph.")
    pr.add_argument("--prompt", default=None, help="Prompt shown before input.")
    pr.add_argument(
        "--no-initial-frame",
        action="store_true",
        help="Do not print the empty canvas before the first script.",
    )

    pv = sub.add_parser(
        "validate",
        help="Validate a JSON config and print a brief summary.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    pv.add_argument("config", help="Path to the input JSON config.")

    return p


# -------------------------
# Commands
# -------------------------


def resolve_config(args: argparse.Namespace) -> SessionConfig:
    cfg = parse_config(load_json(args.config)) if args.config else SessionConfig()
    overrides = {
        "width": args.width,
        "background": args.background,
        "foreground": args.foreground,
        "cursor": args.cursor,
        "prompt": args.prompt,
    }
    return replace(cfg, **{k: v for k, v in overrides.items() if v is not None})


def cmd_run(
    cfg: SessionConfig,
    source: TextIO,
    *,
    out: TextIO,
    err: TextIO,
    initial_frame: bool = True,
) -> None:
    interp = Interpreter(
        build_canvas(cfg),
        cfg.instructions,
        out=out,
        err=err,
        prompt=cfg.prompt,
        initial_frame=initial_frame,
    )
    interp.run(source)


def cmd_validate(config_path: str) -> None:
    cfg = parse_config(load_json(config_path))
    # Constructing a canvas catches anything the schema checks let through.
    build_canvas(cfg)

    print(f"width: {cfg.width}")
    print(
        "palette: "
        f"background={cfg.background!r} foreground={cfg.foreground!r} "
        f"cursor={cfg.cursor!r}"
    )
    print(f"prompt: {cfg.prompt!r}")
    print(f"instructions: {len(cfg.instructions)}")
    sys.stdout.write(format_help(cfg.instructions))


def main(argv: list[str] | None = None) -> int:
    ap = build_argparser()
    args = ap.parse_args(argv)

    try:
        if args.cmd == "run":
            cfg = resolve_config(args)
            if args.script == "-":
                cmd_run(
                    cfg,
                    sys.stdin,
                    out=sys.stdout,
                    err=sys.stderr,
                    initial_frame=not args.no_initial_frame,
                )
            else:
                with open(args.script, encoding="utf-8") as f:
                    cmd_run(
                        cfg,
                        f,
                        out=sys.stdout,
                        err=sys.stderr,
                        initial_frame=not args.no_initial_frame,
                    )
        elif args.cmd == "validate":
            cmd_validate(args.config)
        else:
            raise AssertionError("unreachable")
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2
    except PenError as e:
        print(e, file=sys.stderr)
        return 2
    except OSError as e:
        print(f"File error: {e}", file=sys.stderr)
        return 2
    except MemoryError:
        print("Fatal error: out of memory", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        # Ctrl+C ends an interactive session like end of input.
        pass
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
