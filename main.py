"""
Main entry point for the toolpath viewer.
Loads the configuration and the G-code file, then opens the viewer window.
"""

import argparse
import logging
import sys
from pathlib import Path
from config.viewer_config import ConfigManager
from toolpath_processor import ToolpathProcessor
from utils.errors import ConfigError

log = logging.getLogger(__name__)


def build_arg_parser():
    parser = argparse.ArgumentParser(prog="nc-view", description="CNC toolpath viewer")
    parser.add_argument("file", metavar="FILE", nargs="?", help="G-code file to view")
    parser.add_argument("--config", metavar="PATH", help="configuration file (JSON)")
    parser.add_argument("--dump-config", metavar="PATH",
                        help="write the effective configuration to PATH and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser


def main(argv=None):
    """Initializes and runs the PySide6 application."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    try:
        config = ConfigManager.load_config(args.config)
    except ConfigError as error:
        print(f"nc-view: {error}", file=sys.stderr)
        return 1

    if args.dump_config:
        ConfigManager.save_config(config, args.dump_config)
        log.info("Wrote configuration to %s", args.dump_config)
        return 0

    if args.file is None:
        parser.error("the following arguments are required: FILE")

    processor = ToolpathProcessor(config.parser.to_options())
    if not processor.process_file(args.file):
        print(f"nc-view: {args.file}: {processor.last_error}", file=sys.stderr)
        return 1

    # Qt is only needed once there is something to show
    from PySide6.QtWidgets import QApplication
    from gui.main_window import MainWindow
    from gui.view_state import ViewerSession

    session = ViewerSession(
        config=config,
        toolpath=processor.toolpath,
        file_path=Path(args.file),
        file_lines=processor.source_lines,
    )
    app = QApplication(sys.argv[:1])
    window = MainWindow(session)
    window.show()
    return app.exec()


if __name__ == '__main__':
    sys.exit(main())
