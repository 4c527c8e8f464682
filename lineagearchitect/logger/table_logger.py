"""Table display functionality for logs.

Renders small tables (node listings, edge lists, tree rankings) for the
terminal through ``tabulate`` and for the HTML capture as plain tables.
"""

import html
from typing import Any, List, Optional, Sequence
from tabulate import tabulate
from lineagearchitect.logger.base_logger import AlgorithmLogger


class TableLogger(AlgorithmLogger):
    """Extension of AlgorithmLogger with table support."""

    def table(
        self,
        data: List[List[Any]],
        headers: Optional[List[str]] = None,
        title: Optional[str] = None,
        tablefmt: str = "simple",
        colalign: Optional[Sequence[Optional[str]]] = None,
        floatfmt: str = ".2f",
    ) -> None:
        """Display data as a formatted table."""
        if self.disabled:
            return

        if headers is None:
            headers = []

        if title:
            self.logger.info(f"\n{title}:")
            self._html_content.append(f"<h4>{html.escape(title)}</h4>")

        ascii_table = tabulate(
            data,
            headers=headers,
            tablefmt=tablefmt,
            colalign=colalign,
            floatfmt=floatfmt,
            showindex=False,
        )
        self.logger.info(ascii_table)
        self.raw_html(self._create_html_table(data, headers))

    def _create_html_table(self, data: List[List[Any]], headers: List[str]) -> str:
        html_parts = ['<div class="table-container">', "<table>"]
        if headers:
            html_parts.append("<thead><tr>")
            for header in headers:
                html_parts.append(f"<th>{html.escape(str(header))}</th>")
            html_parts.append("</tr></thead>")

        html_parts.append("<tbody>")
        for row in data:
            html_parts.append("<tr>")
            for cell in row:
                html_parts.append(f"<td>{html.escape(str(cell))}</td>")
            html_parts.append("</tr>")
        html_parts.append("</tbody>")
        html_parts.append("</table>")
        html_parts.append("</div>")
        return "\n".join(html_parts)
