from __future__ import annotations


class PipelineError(ValueError):
    """Base error for report generation; `stage` names the step that failed."""

    stage = "pipeline"

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        if stage is not None:
            self.stage = stage
        self.message = message
        super().__init__(f"[{self.stage}] {message}")


class LoadError(PipelineError):
    stage = "load"


class FormatError(PipelineError):
    stage = "reshape"


class InvalidYearError(FormatError):
    def __init__(self, label: object, *, sheet: str | None = None) -> None:
        self.label = label
        where = f" in sheet '{sheet}'" if sheet else ""
        super().__init__(f"column header {label!r}{where} is not a 4-digit year")


class EmptySelectionError(PipelineError):
    stage = "filter"
