"""Choropleth rendering for reconciled country tables."""

from __future__ import annotations

import logging
from typing import Any

import pandas as pd

from .config import RenderConfig
from .models import MapArtifact, MapType, ReconciliationResult

_MISSING_LABEL = "NA"

_LOGGER = logging.getLogger("ipbesmaps.render")


class MapRenderer:
    """Draw one filled-polygon layer per reconciled table."""

    def __init__(self, cfg: RenderConfig) -> None:
        self.cfg = cfg

    def render(
        self,
        result: ReconciliationResult,
        *,
        map_type: MapType = MapType.COUNTRIES,
    ) -> MapArtifact:
        plt = _require_matplotlib()
        table = self._project(result.table)
        column = result.value_column
        dpi = self.cfg.dpi

        fig, ax = plt.subplots(figsize=(self.cfg.width_px / dpi, self.cfg.height_px / dpi), dpi=dpi)
        try:
            self._draw_layer(ax=ax, table=table, column=column)
            ax.set_xlabel("Longitude")
            ax.set_ylabel("Latitude")
            fig.tight_layout()
        except Exception:
            plt.close(fig)
            raise

        _LOGGER.debug(
            "Rendered %s map: polygons=%d, with_values=%d",
            map_type.value,
            len(table),
            int(table[column].notna().sum()),
        )
        return MapArtifact(
            figure=fig,
            axes=ax,
            table=table,
            value_column=column,
            map_type=map_type,
            dropped_codes=result.dropped_codes,
        )

    def _project(self, table: Any) -> Any:
        if table.crs is None:
            return table.set_crs(self.cfg.crs)
        return table.to_crs(self.cfg.crs)

    def _draw_layer(self, *, ax: Any, table: Any, column: str) -> None:
        values = table[column]
        if not values.notna().any():
            # Nothing to shade; draw the outlines in the missing colour only.
            table.plot(ax=ax, color=self.cfg.missing_color, edgecolor=self.cfg.edge_color)
            ax.set_title(column)
            return

        categorical = not pd.api.types.is_numeric_dtype(values)
        legend_kwds = {"title": column} if categorical else {"label": column}
        table.plot(
            ax=ax,
            column=column,
            categorical=categorical,
            cmap=self.cfg.cmap,
            edgecolor=self.cfg.edge_color,
            legend=True,
            legend_kwds=legend_kwds,
            missing_kwds={"color": self.cfg.missing_color, "label": _MISSING_LABEL},
        )


def _require_matplotlib() -> Any:
    try:
        import matplotlib.pyplot as plt
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for map rendering") from exc
    return plt
