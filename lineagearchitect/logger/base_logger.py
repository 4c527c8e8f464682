"""Base logging functionality for algorithm tracing and debugging."""

import html
import logging
from typing import Any

from lineagearchitect.logger.html_content import CSS_LOG


class AlgorithmLogger:
    """Base logger class for algorithm tracing and debugging."""

    def __init__(self, name: str):
        self.name = name
        self.disabled = False
        self._html_content = ['<div class="content">']
        self._css_content: list[str] = []
        self._section_open = False

        self.logger = logging.getLogger(name)

        # Only add a default StreamHandler if no handlers exist, so that
        # instances sharing a name do not duplicate output.
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(message)s")
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.INFO)
            self.logger.propagate = False
        else:
            if self.logger.level == logging.NOTSET:
                self.logger.setLevel(logging.INFO)
            self.logger.propagate = False

        self._css_content.append(CSS_LOG)

    def section(self, title: str):
        """Create a new section in the log."""
        if self.disabled:
            return
        # Close any previously open section to keep HTML balanced
        if self._section_open:
            self._html_content.append("</section>")
            self._section_open = False

        self.logger.info(f"\n{'=' * 20} {title} {'=' * 20}\n")
        self._html_content.append(
            f'<section class="section"><h3>{html.escape(title)}</h3>'
        )
        self._section_open = True

    def subsection(self, title: str):
        """Create a new subsection in the log."""
        if self.disabled:
            return
        self.logger.info(f"\n{'-' * 15} {title} {'-' * 15}\n")
        self._html_content.append(
            f'<div class="subsection"><h4>{html.escape(title)}</h4></div>'
        )

    def info(self, message: str):
        """Log info message."""
        if self.disabled:
            return
        self.logger.info(message)
        self._html_content.append(f'<p class="info">{html.escape(message)}</p>')

    def warning(self, message: str):
        """Log warning message."""
        if self.disabled:
            return
        self.logger.warning(message)
        self._html_content.append(f'<p class="warning">{html.escape(message)}</p>')

    def error(self, message: str):
        """Log an error message."""
        if self.disabled:
            return
        self.logger.error(message)
        self._html_content.append(f'<p class="error">{html.escape(message)}</p>')

    def debug(self, message: str):
        """Log debug message."""
        if self.disabled:
            return
        self.logger.debug(message)
        self._html_content.append(f'<p class="debug">{html.escape(message)}</p>')

    def result(self, label: str, value: Any):
        """Log a result with a label."""
        if self.disabled:
            return
        self.logger.info(f"{label}: {value}")
        self._html_content.append(
            f'<div class="result"><strong>{html.escape(label)}:</strong> '
            f"{html.escape(str(value))}</div>"
        )

    def preformatted(self, text: str, css_class: str = "lineage"):
        """Log a block of preformatted text, e.g. a lineage report."""
        if self.disabled:
            return
        self.logger.info(text)
        self._html_content.append(
            f'<pre class="{css_class}">{html.escape(text)}</pre>'
        )

    def raw_html(self, html_content: str):
        """Add raw HTML content to the debug output."""
        if self.disabled:
            return
        self._html_content.append(html_content)

    def end_section(self):
        """End the current section."""
        if self.disabled:
            return
        if self._section_open:
            self._html_content.append("</section>")
            self._section_open = False

    def clear(self):
        """Clear all accumulated content."""
        self._html_content = ['<div class="content">']
        self._css_content = [CSS_LOG]
        self._section_open = False

    def get_html_content(self) -> str:
        """Get the accumulated HTML body content."""
        # Build a snapshot without mutating internal buffers
        parts = list(self._html_content)
        if self._section_open:
            parts.append("</section>")
        parts.append("</div>")
        return "\n".join(parts)

    def get_css_content(self) -> str:
        """Get the accumulated CSS content."""
        return "\n".join(self._css_content)

