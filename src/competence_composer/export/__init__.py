"""Preview rendering for competence files."""
from competence_composer.export.preview_renderer import (
    PreviewOptions,
    render_preview,
    strip_sync_marker,
)

__all__ = ["PreviewOptions", "render_preview", "strip_sync_marker"]
