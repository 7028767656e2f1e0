"""
Test report generator.

Renders stored results through registered report formats and writes the
output to disk.
"""

import webbrowser
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from ..core.exceptions import ReportGenerationError
from ..core.logging_config import get_logger
from .formats import ReportFormatter, builtin_formats
from .models import ExecutionSummary
from .store import ResultStore

Opener = Callable[[Path], None]


def _open_in_browser(path: Path) -> None:
    webbrowser.open(path.resolve().as_uri())


def _print_text(path: Path) -> None:
    print(path.read_text(encoding="utf-8"))


class ReportGenerator:
    """
    Generates summary reports over a ``ResultStore``.

    HTML, JSON and JUnit formats are registered by default; more can be
    added with ``register_format``.
    """

    def __init__(
        self,
        store: ResultStore,
        output_dir: Path,
        template_dir: Optional[Path] = None,
        browser_opener: Opener = _open_in_browser,
        text_opener: Opener = _print_text,
    ):
        """
        Initialize the report generator.

        Args:
            store: Source of results
            output_dir: Directory for reports written without an explicit path
            template_dir: Directory that may hold a ``report.html`` override
            browser_opener: Called with HTML reports by ``open_report``
            text_opener: Called with every other report by ``open_report``
        """
        self.store = store
        self.output_dir = Path(output_dir)
        self.browser_opener = browser_opener
        self.text_opener = text_opener
        self.logger = get_logger(__name__)

        self._formats: Dict[str, ReportFormatter] = {}
        for fmt in builtin_formats(template_dir):
            self.register_format(fmt)

    def register_format(self, fmt: ReportFormatter) -> None:
        if not fmt.name or not fmt.extension:
            raise ValueError("Report formats need a name and an extension")
        self._formats[fmt.name] = fmt

    def get_format(self, name: str) -> ReportFormatter:
        fmt = self._formats.get(name.lower())
        if fmt is None:
            raise ReportGenerationError(
                f"Unsupported report format: {name}. Available: {', '.join(self.format_names)}",
                format_name=name,
            )
        return fmt

    @property
    def format_names(self) -> List[str]:
        return sorted(self._formats)

    def get_summary(self) -> ExecutionSummary:
        return ExecutionSummary.from_results(self.store.get_all_results())

    def default_report_path(self, fmt: ReportFormatter) -> Path:
        timestamp = datetime.utcnow().strftime("%Y%m%d-%H%M%S-%f")
        return self.output_dir / f"test-report-{timestamp}.{fmt.extension}"

    def generate_report(
        self, format_name: str = "html", output_path: Optional[Union[str, Path]] = None
    ) -> Path:
        """
        Render every stored result and write the report.

        Args:
            format_name: Registered format name
            output_path: Destination file, defaults to a timestamped name in ``output_dir``

        Returns:
            Path of the written report

        Raises:
            ReportGenerationError: If the format is unknown or rendering or writing fails
        """
        fmt = self.get_format(format_name)
        path = Path(output_path) if output_path else self.default_report_path(fmt)
        results = self.store.get_all_results()

        try:
            content = fmt.generate_report(results)
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(content)
        except Exception as e:
            raise ReportGenerationError(
                f"Failed to generate {fmt.name} report: {e}",
                format_name=fmt.name,
                output_path=str(path),
            )

        self.logger.info(
            f"Saved {fmt.name} report to: {path}",
            extra={"metadata": {"results": len(results)}},
        )
        return path

    def open_report(self, path: Union[str, Path]) -> None:
        """Open an HTML report in the browser and anything else as text."""
        path = Path(path)
        if path.suffix.lower() == ".html":
            self.browser_opener(path)
        else:
            self.text_opener(path)
