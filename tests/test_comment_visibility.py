import datetime as dt

from backend.domain import CommentType, ReviewComment, Role
from backend.review_workflow import filter_visible_comments, get_comment_visibility


def _comment(idx, author_role):
    return ReviewComment(
        id=f"c{idx}",
        submission_id="sub-1",
        author_user_id=f"user-{idx}",
        author_role=author_role,
        type=CommentType.COMMENT,
        text=f"comment {idx}",
        timestamp=dt.datetime(2025, 1, 1, 10, idx),
    )


def test_nodal_comment_is_visible_to_everyone_in_the_chain():
    comment = _comment(1, Role.NODAL_OFFICER)

    assert get_comment_visibility(comment, Role.NODAL_OFFICER)
    assert get_comment_visibility(comment, Role.STATE_APPROVER)
    assert get_comment_visibility(comment, Role.MOSPI_REVIEWER)
    assert get_comment_visibility(comment, Role.MOSPI_APPROVER)


def test_mospi_comment_is_hidden_from_state_level():
    comment = _comment(1, Role.MOSPI_APPROVER)

    assert not get_comment_visibility(comment, Role.NODAL_OFFICER)
    assert not get_comment_visibility(comment, Role.STATE_APPROVER)
    assert get_comment_visibility(comment, Role.MOSPI_REVIEWER)


def test_state_approver_comment_hidden_from_nodal_officer():
    comment = _comment(1, Role.STATE_APPROVER)

    assert get_comment_visibility(comment, Role.STATE_APPROVER)
    assert not get_comment_visibility(comment, Role.NODAL_OFFICER)


def test_admin_sees_no_review_comments():
    for role in Role:
        assert not get_comment_visibility(_comment(1, role), Role.ADMIN)


def test_filter_preserves_insertion_order():
    # timestamps deliberately out of order: display follows insertion, not time
    comments = [
        _comment(5, Role.NODAL_OFFICER),
        _comment(1, Role.MOSPI_REVIEWER),
        _comment(3, Role.STATE_APPROVER),
        _comment(2, Role.NODAL_OFFICER),
    ]

    assert [c.id for c in filter_visible_comments(comments, Role.STATE_APPROVER)] == ["c5", "c3", "c2"]
    assert [c.id for c in filter_visible_comments(comments, Role.NODAL_OFFICER)] == ["c5", "c2"]
    assert [c.id for c in filter_visible_comments(comments, Role.MOSPI_APPROVER)] == ["c5", "c1", "c3", "c2"]
