import json
import os
import requests
import streamlit as st

API_BASE = os.getenv("API_BASE", "http://localhost:8000")

ROLES = ["NODAL_OFFICER", "STATE_APPROVER", "MOSPI_REVIEWER", "MOSPI_APPROVER", "ADMIN"]

ACTION_LABELS = {
    "submit_to_state": "Submit to State",
    "forward_to_mospi": "Forward to MoSPI",
    "state_reject": "Reject",
    "final_reject": "Final Reject",
    "resubmit": "Resubmit",
    "approve": "Approve",
    "add_comment": "Add Comment",
}

st.set_page_config(page_title="NIRI Submission Review", layout="wide")


def fetch_submissions(role: str):
    try:
        return requests.get(f"{API_BASE}/submissions", params={"role": role}, timeout=30).json()
    except requests.RequestException:
        return []


def fetch_submission(submission_id: str, role: str):
    return requests.get(f"{API_BASE}/submissions/{submission_id}", params={"role": role}, timeout=30).json()


def fetch_audit(submission_id: str):
    return requests.get(f"{API_BASE}/submissions/{submission_id}/audit", timeout=30).json()


def fetch_dashboard(role: str):
    return requests.get(f"{API_BASE}/dashboard", params={"role": role}, timeout=30).json()


def error_text(res):
    try:
        return res.json().get("detail", res.text)
    except ValueError:
        return res.text


st.sidebar.header("Reviewer")
role = st.sidebar.selectbox("Role", options=ROLES)
user_id = st.sidebar.text_input("User ID", value=role.lower())
refresh = st.sidebar.button("Refresh submissions")

if refresh or st.session_state.get("role") != role or "submissions" not in st.session_state:
    st.session_state["role"] = role
    st.session_state["submissions"] = fetch_submissions(role)

submissions = st.session_state.get("submissions", [])
labels = {s["id"]: f"{s['submission_id']} ({s['status_info']['label']})" for s in submissions}
selected_id = st.sidebar.selectbox(
    "Select submission",
    options=[""] + list(labels),
    format_func=lambda key: labels.get(key, "-"),
)

if role == "NODAL_OFFICER":
    st.sidebar.markdown("---")
    state_ut = st.sidebar.text_input("State / UT", value="MH")
    if st.sidebar.button("New draft"):
        res = requests.post(
            f"{API_BASE}/submissions",
            json={"actor_role": role, "actor_user_id": user_id, "state_ut": state_ut},
            timeout=30,
        )
        if res.ok:
            st.sidebar.success(f"Draft created: {res.json()['submission']['submission_id']}")
            st.session_state.pop("submissions", None)
        else:
            st.sidebar.error(error_text(res))


tab_dashboard, tab_review, tab_comments, tab_audit = st.tabs([
    "Dashboard",
    "Review",
    "Comments",
    "Audit Trail",
])


with tab_dashboard:
    st.markdown("### Dashboard")
    summary = fetch_dashboard(role)
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total", summary.get("total_submissions", 0))
    col2.metric("Waiting on you", summary.get("pending_for_role", 0))
    col3.metric("Approved", summary.get("approved", 0))
    col4.metric("Rejected", summary.get("rejected", 0))
    if summary.get("by_status"):
        st.bar_chart(summary["by_status"])


with tab_review:
    st.markdown("### Submission")
    if selected_id:
        sub = fetch_submission(selected_id, role)
        info = sub["status_info"]
        st.markdown(f"**{sub['submission_id']}** | {sub['state_ut']} | **{info['label']}** | Rejections: {sub['rejection_count']}")
        st.caption(info["description"])
        st.progress(sub["progress"] / 100.0, text=f"{sub['progress']}% complete")
        if sub.get("waiting_message"):
            st.info(sub["waiting_message"])

        with st.expander("Form data", expanded=False):
            st.json(sub.get("form_data") or {})

        options = {o["action"]: o for o in sub.get("action_options", [])}
        if not options:
            st.warning("No actions available for your role at this stage.")
        else:
            action = st.radio("Action", list(options), format_func=lambda a: ACTION_LABELS.get(a, a), horizontal=True)
            option = options[action]
            if option["escalates"]:
                st.error("This submission was rejected before. Rejecting again closes it permanently.")
            label = "Comment (required)" if option["comment_required"] else "Comment"
            comment = st.text_area(label, max_chars=option["comment_max_length"], key=f"comment-{selected_id}-{action}")
            if st.button(ACTION_LABELS.get(action, action)):
                res = requests.post(
                    f"{API_BASE}/submissions/{selected_id}/actions/{action}",
                    json={
                        "actor_role": role,
                        "actor_user_id": user_id,
                        "comment": comment or None,
                        "expected_version": sub["version"],
                    },
                    timeout=30,
                )
                if res.ok:
                    st.session_state.pop("submissions", None)
                    st.rerun()
                else:
                    st.error(error_text(res))
    else:
        st.info("Select a submission from the sidebar.")


with tab_comments:
    st.markdown("### Review Comments")
    if selected_id:
        sub = fetch_submission(selected_id, role)
        comments = sub.get("review_comments", [])
        if not comments:
            st.info("No comments visible to your role.")
        for c in comments:
            st.markdown(f"**{c['author_role']}** ({c['type']}) {c['timestamp']}")
            st.write(c["text"])
    else:
        st.info("Select a submission to view comments.")


with tab_audit:
    st.markdown("### Audit Trail")
    if selected_id:
        audit = fetch_audit(selected_id)
        for ev in audit.get("timeline", []):
            st.markdown(f"**{ev['action']}** by {ev['actor_user_id']} ({ev['actor_role']}) {ev['timestamp']}")
            with st.expander("View details"):
                st.code(json.dumps(ev.get("details"), indent=2), language="json")
    else:
        st.info("Select a submission to view audit events.")
