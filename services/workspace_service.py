"""
Workspace state for one uploaded workbook.

A WorkspaceController owns a frozen WorkspaceSnapshot and replaces it on
every change. Locked charts and templates belong to the user rather than
to the workbook, so changes to them are handed to the persistence
callbacks as soon as they happen.
"""

import time
import uuid
from typing import Any, Callable, Dict, List, Optional

from exceptions import WorkspaceError
from models.chart_models import (
    AxisBinding,
    ChartConfig,
    ChartOptions,
    ChartTemplate,
    ChartType,
    LockedChart,
    MatchStrategy,
    SeriesBinding,
    SheetData,
    SortOrder,
    TemplateChart,
    dump_model,
)
from models.workspace_models import ActiveChart, ChartText, WorkspaceSnapshot
from services import session_service, user_store_service
from services.chart_options_service import derive_chart_options
from services.excel_reader_service import read_workbook
from services.style_presets_service import apply_style_preset
from services.template_matcher_service import adjust_config_for_new_headers
from utils.logger import get_logger

logger = get_logger(__name__)

CHART_TYPE_NAMES = {
    ChartType.BAR: "Bar chart",
    ChartType.LINE: "Line chart",
    ChartType.PIE: "Pie chart",
    ChartType.SCATTER: "Scatter chart",
    ChartType.AREA: "Area chart",
    ChartType.RADAR: "Radar chart",
}

ChartsCallback = Callable[[List[LockedChart]], None]
TemplatesCallback = Callable[[List[ChartTemplate]], None]


def _now_ms() -> int:
    return int(time.time() * 1000)


def create_default_config(chart_type: ChartType, headers: List[str]) -> ChartConfig:
    """First column on the X axis, second column as Y and only series, counting occurrences."""
    x_field = headers[0] if len(headers) > 0 else ""
    y_field = headers[1] if len(headers) > 1 else ""
    return ChartConfig(
        type=chart_type,
        title=CHART_TYPE_NAMES.get(chart_type, "New chart"),
        x_axis=AxisBinding(field=x_field, title=x_field),
        y_axis=AxisBinding(field=y_field, title=y_field),
        series=[SeriesBinding(field=y_field, name=y_field)],
        options=ChartOptions(show_data_labels=False, base_value=0, sort_order=SortOrder.NONE, count_mode=True),
    )


class WorkspaceController:
    def __init__(
        self,
        snapshot: Optional[WorkspaceSnapshot] = None,
        on_locked_charts_change: Optional[ChartsCallback] = None,
        on_templates_change: Optional[TemplatesCallback] = None,
    ):
        self._snapshot = snapshot or WorkspaceSnapshot()
        self._on_locked_charts_change = on_locked_charts_change
        self._on_templates_change = on_templates_change

    @property
    def snapshot(self) -> WorkspaceSnapshot:
        """A deep copy; edits to it never reach the workspace."""
        return self._snapshot.model_copy(deep=True)

    def _commit(self, **changes: Any) -> None:
        self._snapshot = self._snapshot.model_copy(update=changes)
        if "locked_charts" in changes and self._on_locked_charts_change:
            self._on_locked_charts_change(list(self._snapshot.locked_charts))
        if "templates" in changes and self._on_templates_change:
            self._on_templates_change(list(self._snapshot.templates))

    # ---------------------------------------------------------------- sheets
    def load_workbook(self, file_name: str, sheets: List[SheetData]) -> WorkspaceSnapshot:
        """Replace the workbook. Charts on the old sheets go away, locked charts stay."""
        if not sheets:
            raise WorkspaceError("Workbook has no sheets with data.")
        self._commit(
            file_name=file_name,
            sheets=[s.model_copy(deep=True) for s in sheets],
            current_sheet_name=sheets[0].sheet_name,
            active_charts=[],
        )
        return self.snapshot

    def get_sheet(self, sheet_name: str) -> SheetData:
        return self._find_sheet(sheet_name).model_copy(deep=True)

    def _find_sheet(self, sheet_name: str) -> SheetData:
        for sheet in self._snapshot.sheets:
            if sheet.sheet_name == sheet_name:
                return sheet
        raise KeyError(f"Sheet '{sheet_name}' not found in this workspace.")

    def current_sheet(self) -> Optional[SheetData]:
        name = self._snapshot.current_sheet_name
        if name is None:
            return None
        try:
            return self._find_sheet(name).model_copy(deep=True)
        except KeyError:
            return None

    def select_sheet(self, sheet_name: str) -> WorkspaceSnapshot:
        self._find_sheet(sheet_name)
        self._commit(current_sheet_name=sheet_name)
        return self.snapshot

    def _require_current_sheet(self) -> SheetData:
        sheet = self.current_sheet()
        if sheet is None:
            raise WorkspaceError("Select a sheet first.")
        return sheet

    # ---------------------------------------------------------------- charts
    def get_chart(self, chart_id: str) -> ActiveChart:
        return self._find_chart(chart_id).model_copy(deep=True)

    def _find_chart(self, chart_id: str) -> ActiveChart:
        for chart in self._snapshot.active_charts:
            if chart.id == chart_id:
                return chart
        raise KeyError(f"Chart '{chart_id}' not found.")

    def add_chart(self, chart_type: ChartType) -> ActiveChart:
        sheet = self._require_current_sheet()
        chart = ActiveChart(
            id=f"chart-{_now_ms()}-{uuid.uuid4().hex[:6]}",
            config=create_default_config(chart_type, sheet.headers),
            sheet_name=sheet.sheet_name,
        )
        self._commit(active_charts=[*self._snapshot.active_charts, chart])
        logger.info(f"Added {chart_type.value} chart {chart.id} on sheet '{sheet.sheet_name}'")
        return chart.model_copy(deep=True)

    def update_chart(self, chart_id: str, config: ChartConfig) -> ActiveChart:
        current = self._find_chart(chart_id)
        # series without a bound field are dropped
        cleaned = config.model_copy(update={"series": [s for s in config.series if s and s.field]}, deep=True)
        updated = current.model_copy(update={"config": cleaned})
        self._commit(active_charts=[updated if c.id == chart_id else c for c in self._snapshot.active_charts])
        logger.debug(f"Updated chart {chart_id}: {dump_model(cleaned)}")
        return updated.model_copy(deep=True)

    def apply_style(self, chart_id: str, preset_id: str) -> ActiveChart:
        chart = self._find_chart(chart_id)
        return self.update_chart(chart_id, apply_style_preset(chart.config, preset_id))

    def delete_chart(self, chart_id: str) -> None:
        self._find_chart(chart_id)
        self._commit(active_charts=[c for c in self._snapshot.active_charts if c.id != chart_id])

    def reorder_charts(self, source_index: int, destination_index: int) -> List[ActiveChart]:
        charts = list(self._snapshot.active_charts)
        if not (0 <= source_index < len(charts)) or not (0 <= destination_index < len(charts)):
            raise WorkspaceError("Chart position out of range.")
        moved = charts.pop(source_index)
        charts.insert(destination_index, moved)
        self._commit(active_charts=charts)
        return [c.model_copy(deep=True) for c in charts]

    def chart_options(self, chart_id: str) -> Dict[str, Any]:
        chart = self._find_chart(chart_id)
        sheet = self._find_sheet(chart.sheet_name)
        return derive_chart_options(sheet.headers, sheet.data, chart.config)

    # ---------------------------------------------------------- locked charts
    def get_locked_chart(self, locked_id: str) -> LockedChart:
        return self._find_locked(locked_id).model_copy(deep=True)

    def _find_locked(self, locked_id: str) -> LockedChart:
        for chart in self._snapshot.locked_charts:
            if chart.id == locked_id:
                return chart
        raise KeyError(f"Locked chart '{locked_id}' not found.")

    def lock_chart(self, chart_id: str) -> LockedChart:
        """Freeze a chart together with a private copy of its sheet."""
        chart = self._find_chart(chart_id)
        sheet = self._find_sheet(chart.sheet_name)
        now = _now_ms()
        locked = LockedChart(
            id=f"locked-{now}-{chart_id}",
            config=chart.config.model_copy(deep=True),
            source_data=sheet.model_copy(deep=True),
            locked_at=now,
            source_file_name=self._snapshot.file_name,
        )
        self._commit(locked_charts=[*self._snapshot.locked_charts, locked])
        logger.info(f"Locked chart {chart_id} as {locked.id}")
        return locked.model_copy(deep=True)

    def delete_locked_chart(self, locked_id: str) -> None:
        self._find_locked(locked_id)
        texts = {k: v for k, v in self._snapshot.chart_texts.items() if k != locked_id}
        self._commit(
            locked_charts=[c for c in self._snapshot.locked_charts if c.id != locked_id],
            chart_texts=texts,
        )

    def locked_chart_options(self, locked_id: str) -> Dict[str, Any]:
        locked = self._find_locked(locked_id)
        return derive_chart_options(locked.source_data.headers, locked.source_data.data, locked.config)

    def set_chart_text(self, locked_id: str, pre_analysis: str = "", post_analysis: str = "") -> ChartText:
        self._find_locked(locked_id)
        text = ChartText(pre_analysis=pre_analysis, post_analysis=post_analysis)
        self._commit(chart_texts={**self._snapshot.chart_texts, locked_id: text})
        return text

    def chart_text(self, locked_id: str) -> ChartText:
        return self._snapshot.chart_texts.get(locked_id) or ChartText()

    # -------------------------------------------------------------- templates
    def get_template(self, template_id: str) -> ChartTemplate:
        return self._find_template(template_id).model_copy(deep=True)

    def _find_template(self, template_id: str) -> ChartTemplate:
        for template in self._snapshot.templates:
            if template.id == template_id:
                return template
        raise KeyError(f"Template '{template_id}' not found.")

    def create_template(self, name: str, description: str = "") -> ChartTemplate:
        locked_charts = self._snapshot.locked_charts
        if not locked_charts:
            raise WorkspaceError("Lock at least one chart before creating a template.")

        charts = []
        for locked in locked_charts:
            text = self.chart_text(locked.id)
            charts.append(
                TemplateChart(
                    config=locked.config.model_copy(deep=True),
                    original_headers=list(locked.source_data.headers),
                    pre_analysis=text.pre_analysis,
                    post_analysis=text.post_analysis,
                )
            )

        template = ChartTemplate(
            id=f"template-{_now_ms()}",
            name=name,
            description=description,
            created_at=_now_ms(),
            charts=charts,
        )
        self._commit(templates=[*self._snapshot.templates, template])
        logger.info(f"Created template '{name}' with {len(charts)} chart(s)")
        return template.model_copy(deep=True)

    def delete_template(self, template_id: str) -> None:
        self._find_template(template_id)
        self._commit(templates=[t for t in self._snapshot.templates if t.id != template_id])

    def apply_template(
        self,
        template_id: str,
        match_strategy: MatchStrategy = MatchStrategy.EXACT,
        header_mappings: Optional[Dict[str, str]] = None,
    ) -> List[LockedChart]:
        """Replay a template against the current sheet; every template chart becomes a locked chart."""
        sheet = self._require_current_sheet()
        template = self._find_template(template_id)

        now = _now_ms()
        created = []
        texts = dict(self._snapshot.chart_texts)
        for index, template_chart in enumerate(template.charts):
            config = adjust_config_for_new_headers(template_chart.config, sheet.headers, match_strategy, header_mappings)
            locked = LockedChart(
                id=f"applied-{now}-{index}",
                config=config,
                source_data=sheet.model_copy(deep=True),
                locked_at=now,
                source_file_name=self._snapshot.file_name,
            )
            created.append(locked)
            if template_chart.pre_analysis or template_chart.post_analysis:
                texts[locked.id] = ChartText(pre_analysis=template_chart.pre_analysis, post_analysis=template_chart.post_analysis)

        self._commit(locked_charts=[*self._snapshot.locked_charts, *created], chart_texts=texts)
        logger.info(f"Applied template '{template.name}' ({match_strategy.value}), created {len(created)} chart(s)")
        return [c.model_copy(deep=True) for c in created]

    # -------------------------------------------------------------- snapshots
    def export_snapshot(self) -> Dict[str, Any]:
        return dump_model(self._snapshot)

    def import_snapshot(self, data: Dict[str, Any]) -> WorkspaceSnapshot:
        snapshot = WorkspaceSnapshot.model_validate(data)
        self._commit(**{name: getattr(snapshot, name) for name in WorkspaceSnapshot.model_fields})
        return self.snapshot


# In-memory registry of open workspaces, keyed by upload session id
_WORKSPACES: Dict[str, WorkspaceController] = {}


def open_workspace(session_id: str, username: str, file_name: str, sheets: List[SheetData]) -> WorkspaceController:
    """Create the workspace of an upload session, preloaded with the user's saved charts and templates."""
    snapshot = WorkspaceSnapshot(
        locked_charts=user_store_service.get_locked_charts(username),
        templates=user_store_service.get_templates(username),
    )
    controller = WorkspaceController(
        snapshot,
        on_locked_charts_change=lambda charts: user_store_service.save_locked_charts(username, charts),
        on_templates_change=lambda templates: user_store_service.save_templates(username, templates),
    )
    controller.load_workbook(file_name, sheets)
    _WORKSPACES[session_id] = controller
    return controller


def get_workspace(session_id: str) -> Optional[WorkspaceController]:
    return _WORKSPACES.get(session_id)


def close_workspace(session_id: str) -> None:
    _WORKSPACES.pop(session_id, None)


def workspace_for_session(session_id: str, username: str) -> WorkspaceController:
    """Workspace of a session owned by username; KeyError for unknown or foreign sessions."""
    session = session_service.get_session(session_id)
    if session is None or session.username != username:
        raise KeyError("Session not found.")

    controller = get_workspace(session_id)
    if controller is None:
        # registry is in memory; rebuild from the stored upload after a restart
        logger.info(f"Reopening workspace for session {session_id} from {session.file_path}")
        controller = open_workspace(session_id, username, session.file_name, read_workbook(session.file_path))
    return controller
