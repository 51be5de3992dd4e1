from backend import service
from backend.db import init_db
from backend.domain import Role, WorkflowAction
from backend.store import SubmissionStore

A = WorkflowAction


def main():
    init_db()
    store = SubmissionStore()

    draft, _ = service.create_submission(store, "nodal-mh", "MH", Role.NODAL_OFFICER)

    at_state, _ = service.create_submission(store, "nodal-ka", "KA", Role.NODAL_OFFICER)
    service.perform_action(store, at_state.id, A.SUBMIT_TO_STATE, Role.NODAL_OFFICER, "nodal-ka")

    rejected, _ = service.create_submission(store, "nodal-tn", "TN", Role.NODAL_OFFICER)
    service.perform_action(store, rejected.id, A.SUBMIT_TO_STATE, Role.NODAL_OFFICER, "nodal-tn")
    service.perform_action(store, rejected.id, A.STATE_REJECT, Role.STATE_APPROVER, "state-tn",
                           comment="Missing Annex 3 for indicator 2.3")

    approved, _ = service.create_submission(store, "nodal-gj", "GJ", Role.NODAL_OFFICER)
    service.perform_action(store, approved.id, A.SUBMIT_TO_STATE, Role.NODAL_OFFICER, "nodal-gj")
    service.perform_action(store, approved.id, A.FORWARD_TO_MOSPI, Role.STATE_APPROVER, "state-gj",
                           comment="Verified against state budget documents")
    service.perform_action(store, approved.id, A.FORWARD_TO_MOSPI, Role.MOSPI_REVIEWER, "mospi-reviewer")
    service.perform_action(store, approved.id, A.APPROVE, Role.MOSPI_APPROVER, "mospi-approver",
                           comment="Approved for NIRI scoring")

    print(f"Seeded submissions: {draft.submission_id}, {at_state.submission_id}, "
          f"{rejected.submission_id}, {approved.submission_id}")


if __name__ == "__main__":
    main()
