"""Plotly chart report for watchlist rows."""

from __future__ import annotations

from pathlib import Path

import pandas as pd
import plotly.express as px

from stockwatch.view_models import WatchlistRow


def rows_to_frame(rows: list[WatchlistRow]) -> pd.DataFrame:
    """Flatten chart series into one long frame."""
    records = [
        {
            "symbol": row.symbol,
            "step": index,
            "close": value,
            "color": row.change_color,
        }
        for row in rows
        for index, value in enumerate(row.chart.data)
    ]
    return pd.DataFrame(records, columns=["symbol", "step", "close", "color"])


def generate_chart_report(rows: list[WatchlistRow], output_html_path: str) -> None:
    """Render one close-price line per symbol, coloured by change sign."""
    output = Path(output_html_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    frame = rows_to_frame(rows)
    if frame.empty:
        empty_df = pd.DataFrame({"symbol": ["no-data"], "count": [0]})
        figure = px.bar(empty_df, x="symbol", y="count", title="Watchlist")
        figure.write_html(str(output), include_plotlyjs="cdn")
        return

    html_parts = [
        "<html><head><meta charset='utf-8'><title>stockwatch report</title></head><body>",
    ]
    include_js: str | bool = "cdn"
    for row in rows:
        series = frame[frame["symbol"] == row.symbol]
        if series.empty:
            continue
        figure = px.line(
            series,
            x="step",
            y="close",
            title=f"{row.symbol} | {row.company_name} | {row.price} | {row.change_percentage}",
            color_discrete_sequence=[row.change_color],
        )
        figure.update_traces(fill="tozeroy", line={"width": 1})
        figure.update_xaxes(visible=row.chart.show_axis)
        figure.update_layout(showlegend=row.chart.show_legend)
        html_parts.append(figure.to_html(full_html=False, include_plotlyjs=include_js))
        include_js = False
    html_parts.append("</body></html>")
    output.write_text("".join(html_parts), encoding="utf-8")
