"""
Main toolpath processor interface.
This is the entry point the viewer uses to load G-code into a toolpath.
"""
import bisect
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
from core.interpreter import ToolpathInterpreter, split_source_lines, strip_line_ending
from core.geometry import LineSegment, MoveKind, Toolpath
from core.lexer import ParseOptions
from utils.errors import GCodeError

log = logging.getLogger(__name__)


class ToolpathProcessor:
    """
    Loads G-code into a Toolpath and answers questions about it.

    Processing is all-or-nothing: on any error the previous toolpath is
    dropped, last_error holds the cause and the process_* call returns False.
    """

    def __init__(self, options: Optional[ParseOptions] = None):
        self.options = options or ParseOptions()
        self.toolpath: Optional[Toolpath] = None
        self.source_lines: List[str] = []
        self.last_error: Optional[Exception] = None
        self.final_state: Dict[str, Any] = {}

    def process_file(self, path: Union[str, Path]) -> bool:
        """
        Read and process a G-code file.

        Returns:
            True if the whole file was interpreted without errors
        """
        try:
            with open(path, 'r', encoding='utf-8', newline='\n') as f:
                lines = [strip_line_ending(line) for line in f]
        except (OSError, UnicodeDecodeError) as error:
            log.error("Failed to read %s: %s", path, error)
            self.source_lines = []
            self._fail(error)
            return False

        log.info("Loaded %s (%d lines)", path, len(lines))
        return self.process_lines(lines)

    def process_text(self, gcode_text: str) -> bool:
        """Process G-code text held in memory."""
        return self.process_lines(split_source_lines(gcode_text))

    def process_lines(self, lines: List[str]) -> bool:
        self.source_lines = list(lines)
        interpreter = ToolpathInterpreter(self.options)
        try:
            for line_number, line in enumerate(self.source_lines, 1):
                interpreter.process_line(line, line_number)
        except GCodeError as error:
            log.error("G-code error: %s", error)
            self._fail(error)
            return False

        self.toolpath = interpreter.finish()
        self.final_state = interpreter.state.get_state_summary()
        self.last_error = None
        stats = self.toolpath.stats
        log.debug("Parsed %d lines into %d segments (%d rapid, %d feed, %d arcs)",
                  stats.line_count, stats.segment_count, stats.rapid_moves,
                  stats.feed_moves, stats.arc_moves)
        return True

    def was_processing_successful(self) -> bool:
        return self.toolpath is not None

    # Geometry queries for the viewer

    def get_all_segments(self) -> List[LineSegment]:
        if self.toolpath is None:
            return []
        return self.toolpath.segments

    def get_segments_by_kind(self, kind: MoveKind) -> List[LineSegment]:
        return [seg for seg in self.get_all_segments() if seg.kind == kind]

    def get_segment_range_for_lines(self, first_line: int, last_line: int) -> Tuple[int, int]:
        """Segment slice produced by the 1-based, inclusive source line range."""
        if self.toolpath is None:
            return 0, 0
        return self.toolpath.segments_for_lines(first_line - 1, last_line - 1)

    def get_line_for_segment(self, segment_index: int) -> Optional[int]:
        """
        1-based source line that produced a segment.

        Useful for viewport-to-editor synchronization.
        """
        if self.toolpath is None or not 0 <= segment_index < len(self.toolpath.segments):
            return None
        ends = self.toolpath.line_segment_ends
        return bisect.bisect_right(ends, segment_index) + 1

    def get_bounding_box(self) -> Optional[Tuple[List[float], List[float]]]:
        """
        Get the bounding box of all geometry.

        Returns:
            (min_point, max_point) as [x, y, z] lists, or None when no
            segment has been produced
        """
        if self.toolpath is None or not self.toolpath.bounds.initialized:
            return None
        bounds = self.toolpath.bounds
        return bounds.min.to_list(), bounds.max.to_list()

    def get_statistics(self) -> Dict[str, Any]:
        """Get toolpath statistics for display."""
        if self.toolpath is None:
            return {}
        stats = self.toolpath.stats
        return {
            'line_count': stats.line_count,
            'segment_count': stats.segment_count,
            'rapid_moves': stats.rapid_moves,
            'feed_moves': stats.feed_moves,
            'arc_moves': stats.arc_moves,
            'total_length': self.toolpath.total_length(),
            'rapid_length': sum(seg.length() for seg in self.get_segments_by_kind(MoveKind.RAPID)),
            'feed_length': sum(seg.length() for seg in self.get_segments_by_kind(MoveKind.FEED)),
        }

    def get_toolpath_summary(self) -> Dict[str, Any]:
        """
        Get a summary of the toolpath for display purposes.
        """
        stats = self.get_statistics()
        box = self.get_bounding_box()
        summary = {
            'statistics': stats,
            'bounding_box': None,
            'final_state': self.final_state,
        }
        if box is not None:
            min_point, max_point = box
            summary['bounding_box'] = {
                'min': min_point,
                'max': max_point,
                'size': [hi - lo for lo, hi in zip(min_point, max_point)]
            }
        return summary

    def reset(self):
        """Reset processor to initial state."""
        self.toolpath = None
        self.source_lines = []
        self.last_error = None
        self.final_state = {}

    def _fail(self, error: Exception):
        self.toolpath = None
        self.final_state = {}
        self.last_error = error
