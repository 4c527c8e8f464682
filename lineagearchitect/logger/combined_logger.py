"""Combined logger with all functionality."""

import logging
from pathlib import Path
from typing import Union

from lineagearchitect.logger.table_logger import TableLogger


class Logger(TableLogger):
    """
    Algorithm logger used to trace graph construction and tree enumeration.

    Usage:
        logger = Logger("Lineage")
        logger.section("Constraint graph")
        logger.info("Building levels...")
        logger.table(rows, headers=["id", "tag", "level"])
        logger.write_html("lineage_debug.html")
    """

    def __init__(self, name: str):
        TableLogger.__init__(self, name)

    def setup_console_logging(self, level: int = logging.INFO):
        """Enable logging to the console."""
        self.disabled = False
        if not any(isinstance(h, logging.StreamHandler) for h in self.logger.handlers):
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)
        self.logger.setLevel(level)

    def write_html(self, path: Union[str, Path], title: str = "Lineage debug log"):
        """Write the accumulated log as a standalone HTML page."""
        page = (
            "<!DOCTYPE html>\n<html>\n<head>\n"
            f'<meta charset="utf-8">\n<title>{title}</title>\n'
            f"<style>\n{self.get_css_content()}\n</style>\n"
            "</head>\n<body>\n"
            f"{self.get_html_content()}\n"
            "</body>\n</html>\n"
        )
        Path(path).write_text(page, encoding="utf-8")
