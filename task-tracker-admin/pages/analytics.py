import streamlit as st

from tracker import ui
from tracker.analytics import analytics_to_df, completion_chart, department_summary, overall_completion


ui.require_page("analytics")

ui.flush_notices()
st.title("User Task Analytics")

client = ui.get_client()
rows = ui.load(("analytics",), client.get_analytics)
if rows is None:
    st.stop()

df = analytics_to_df(rows)
if df.empty:
    st.info("No analytics available yet.")
    st.stop()

k1, k2, k3 = st.columns(3)
k1.metric("Employees", len(df))
k2.metric("Tasks", int(df["total_tasks"].sum()))
k3.metric("Completed", f"{overall_completion(df):.0%}")

st.dataframe(
    df,
    hide_index=True,
    use_container_width=True,
    column_config={
        "employee_id": st.column_config.NumberColumn("Employee ID", format="%d"),
        "username": "Username",
        "department": "Department",
        "completed_tasks": "Completed Tasks",
        "total_tasks": "Total Tasks",
        "completion_rate": st.column_config.ProgressColumn("Completion", min_value=0.0, max_value=1.0, format="percent"),
    },
)

c1, c2 = st.columns([3, 2])
with c1:
    st.plotly_chart(completion_chart(df), use_container_width=True)
with c2:
    st.subheader("By department")
    st.dataframe(
        department_summary(df),
        hide_index=True,
        use_container_width=True,
        column_config={
            "completion_rate": st.column_config.ProgressColumn("Completion", min_value=0.0, max_value=1.0, format="percent"),
        },
    )
