from __future__ import annotations

from typing import Sequence

import pandas as pd
import plotly.graph_objects as go

from tracker.models import AnalyticsRow


COLUMNS = ["employee_id", "username", "department", "completed_tasks", "total_tasks", "completion_rate"]


def analytics_to_df(rows: Sequence[AnalyticsRow]) -> pd.DataFrame:
    """Per-user completion table, highest completion rate first."""
    if not rows:
        return pd.DataFrame(columns=COLUMNS)
    df = pd.DataFrame(
        [
            {
                "employee_id": r.employee_id,
                "username": r.username,
                "department": r.department or "Unassigned",
                "completed_tasks": r.completed_tasks,
                "total_tasks": r.total_tasks,
                "completion_rate": r.completion_rate,
            }
            for r in rows
        ],
        columns=COLUMNS,
    )
    return df.sort_values(["completion_rate", "username"], ascending=[False, True], kind="stable").reset_index(drop=True)


def department_summary(df: pd.DataFrame) -> pd.DataFrame:
    if df.empty:
        return pd.DataFrame(columns=["department", "employees", "completed_tasks", "total_tasks", "completion_rate"])
    summary = (
        df.groupby("department", as_index=False)
        .agg(
            employees=("employee_id", "count"),
            completed_tasks=("completed_tasks", "sum"),
            total_tasks=("total_tasks", "sum"),
        )
    )
    totals = summary["total_tasks"].where(summary["total_tasks"] > 0)
    summary["completion_rate"] = (summary["completed_tasks"] / totals).fillna(0.0)
    return summary.sort_values("department").reset_index(drop=True)


def overall_completion(df: pd.DataFrame) -> float:
    if df.empty:
        return 0.0
    total = int(df["total_tasks"].sum())
    return float(df["completed_tasks"].sum()) / total if total else 0.0


def completion_chart(df: pd.DataFrame) -> go.Figure:
    """Stacked bar of completed vs open tasks per user."""
    fig = go.Figure()
    if not df.empty:
        open_tasks = (df["total_tasks"] - df["completed_tasks"]).clip(lower=0)
        fig.add_bar(x=df["username"], y=df["completed_tasks"], name="Completed", marker_color="#00b894")
        fig.add_bar(x=df["username"], y=open_tasks, name="Open", marker_color="#74b9ff")
    fig.update_layout(
        barmode="stack",
        template="plotly_white",
        margin=dict(l=6, r=6, t=30, b=10),
        height=360,
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
    )
    return fig
