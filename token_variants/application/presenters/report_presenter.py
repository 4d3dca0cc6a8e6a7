from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

from jinja2 import Environment, FileSystemLoader

from ...domain import ImageMatch, SearchPaths
from ...domain.mapping import MappingReport


class ReportPresenter:
    def __init__(self, templates_dir: Path | None = None, *, matches_per_entry: int = 5):
        base_dir = templates_dir or (Path(__file__).resolve().parent / "templates")
        self._env = Environment(
            loader=FileSystemLoader(str(base_dir)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
        )
        self.matches_per_entry = matches_per_entry

    def _render(self, template: str, **context) -> str:
        return self._env.get_template(template).render(**context).strip()

    def search_results(
        self,
        name: str,
        results: dict[str, list[ImageMatch]],
        *,
        search_type: str,
        mode: str,
    ) -> str:
        return self._render(
            "search_results.txt.j2",
            name=name,
            results=results,
            search_type=search_type,
            mode=mode,
        )

    def mapping_report(self, report: MappingReport) -> str:
        return self._render("mapping_report.txt.j2", report=report, limit=self.matches_per_entry)

    def token_configs(self, configs: Sequence[tuple[str, str, dict[str, Any]]]) -> str:
        return self._render("token_configs.txt.j2", configs=configs)

    def search_paths(self, paths: SearchPaths) -> str:
        return self._render("search_paths.txt.j2", paths=paths)
