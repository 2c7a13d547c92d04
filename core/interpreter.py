"""
Toolpath interpreter that turns G-code lines into line segments.
"""
import math
from pathlib import Path
from typing import Dict, Iterable, Optional, Union
from core.lexer import GCodeLexer, ParseOptions
from core.machine_state import ModalState, MotionMode
from core.geometry import MoveKind, Toolpath, ToolpathAccumulator
from utils.errors import GCodeError, MalformedLine
from utils.geometry import arc_center, arc_to_segments


AXIS_LETTERS = ('X', 'Y', 'Z')
OFFSET_LETTERS = ('I', 'J', 'K')

# Overflowing G numbers saturate here and match no known code.
CODE_LIMIT = 2 ** 31 - 1


class ToolpathInterpreter:
    """
    Single-pass interpreter over G-code source lines.

    Each call to process_line() consumes one line in order. Segments,
    bounds, statistics and the per-line index are consistent after every
    line, so a caller may stop early and still call finish().
    """

    def __init__(self, options: Optional[ParseOptions] = None):
        self.options = options or ParseOptions()
        self.lexer = GCodeLexer(self.options)
        self.state = ModalState()
        self.accumulator = ToolpathAccumulator()

    def process_line(self, line: str, line_number: int):
        """
        Interpret one source line.

        Errors leave with line_number set to the 1-based source line.
        """
        try:
            self._execute_line(line)
        except GCodeError as error:
            error.line_number = line_number
            raise
        self.accumulator.end_line()

    def finish(self) -> Toolpath:
        return self.accumulator.finish()

    def _execute_line(self, line: str):
        words = self.lexer.tokenize_line(line)
        if not words:
            return

        motion_override = None
        targets: Dict[str, float] = {}

        for word in words:
            if word.letter == 'G':
                motion = self.state.apply_g_code(nearest_code(word.value))
                if motion is not None:
                    motion_override = motion
            elif word.letter in 'XYZIJKR':
                scaled = word.value * self.state.units_scale
                if not math.isfinite(scaled):
                    raise MalformedLine(f"value out of range for {word.letter}")
                targets[word.letter] = scaled

        if motion_override is not None:
            motion = motion_override
        elif any(letter in targets for letter in AXIS_LETTERS + OFFSET_LETTERS):
            motion = self.state.motion_mode
        else:
            return

        if motion.is_arc:
            self._add_arc_move(targets, clockwise=motion == MotionMode.ARC_CW)
        elif motion == MotionMode.RAPID:
            self._add_linear_move(targets, MoveKind.RAPID)
        else:
            self._add_linear_move(targets, MoveKind.FEED)

    def _add_linear_move(self, targets: Dict[str, float], kind: MoveKind):
        start = self.state.position
        end = self.state.resolve_target(targets.get('X'), targets.get('Y'), targets.get('Z'))
        if end == start:
            return

        self.accumulator.add_linear_move(start, end, kind)
        self.state.position = end

    def _add_arc_move(self, targets: Dict[str, float], clockwise: bool):
        start = self.state.position
        end = self.state.resolve_target(targets.get('X'), targets.get('Y'), targets.get('Z'))
        if end == start:
            return

        offsets = {letter: targets[letter] for letter in OFFSET_LETTERS if letter in targets}
        center = arc_center(start, end, offsets, targets.get('R'),
                            self.state.plane, clockwise)
        segments = arc_to_segments(start, end, center, clockwise, self.state.plane)
        if not segments:
            return

        self.accumulator.add_arc_move(segments)
        self.state.position = end


def parse_lines(lines: Iterable[str], options: Optional[ParseOptions] = None) -> Toolpath:
    """Interpret a finite sequence of source lines into a toolpath."""
    interpreter = ToolpathInterpreter(options)
    for line_number, line in enumerate(lines, 1):
        interpreter.process_line(line, line_number)
    return interpreter.finish()


def parse_text(text: str, options: Optional[ParseOptions] = None) -> Toolpath:
    """Interpret G-code held in memory. A trailing newline adds no line."""
    return parse_lines(split_source_lines(text), options)


def parse_file(path: Union[str, Path], options: Optional[ParseOptions] = None) -> Toolpath:
    """Read a G-code file as UTF-8 and interpret it line by line."""
    with open(path, 'r', encoding='utf-8', newline='\n') as f:
        return parse_lines((strip_line_ending(line) for line in f), options)


def split_source_lines(text: str):
    """Split on newlines only, dropping a carriage return before each."""
    if not text:
        return []
    lines = text.split('\n')
    if lines[-1] == '':
        lines.pop()
    return [line[:-1] if line.endswith('\r') else line for line in lines]


def nearest_code(value: float) -> int:
    """Round a G-code number half away from zero (G2.5 reads as G3)."""
    if not math.isfinite(value):
        return int(math.copysign(CODE_LIMIT, value))
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def strip_line_ending(line: str) -> str:
    if line.endswith('\n'):
        line = line[:-1]
    if line.endswith('\r'):
        line = line[:-1]
    return line
