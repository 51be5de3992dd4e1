from backend.domain import CommentType
from backend.validation import character_count, validate_comment


def test_required_comment_must_not_be_blank():
    result = validate_comment("   ", CommentType.REJECTION, required=True)

    assert not result["passed"]
    assert result["errors"] == ["Comment is required"]


def test_optional_comment_may_be_empty():
    result = validate_comment(None, CommentType.APPROVAL, required=False)

    assert result["passed"]
    assert result["text"] == ""


def test_length_limits_per_type():
    assert validate_comment("a" * 500, CommentType.REJECTION)["passed"]
    assert not validate_comment("a" * 501, CommentType.REJECTION)["passed"]
    assert validate_comment("a" * 300, CommentType.APPROVAL)["passed"]
    assert not validate_comment("a" * 301, CommentType.APPROVAL)["passed"]
    assert validate_comment("a" * 400, CommentType.COMMENT)["passed"]
    assert not validate_comment("a" * 401, CommentType.COMMENT)["passed"]


def test_text_is_trimmed_before_length_check():
    result = validate_comment("  " + "a" * 300 + "  ", CommentType.APPROVAL)

    assert result["passed"]
    assert result["text"] == "a" * 300


def test_short_comment_only_warns():
    result = validate_comment("Missing Annex 3", CommentType.REJECTION)

    assert result["passed"]
    assert any("too short" in w for w in result["warnings"])


def test_spam_and_prohibited_phrases_warn():
    result = validate_comment("See https://example.com, this looks like fraud", CommentType.COMMENT)

    assert result["passed"]
    assert "Prohibited phrase found: fraud" in result["warnings"]
    assert "Comment appears to contain spam-like content" in result["warnings"]


def test_character_count():
    info = character_count("a" * 310, CommentType.APPROVAL)

    assert info == {"current": 310, "remaining": -10, "over_limit": True}


def test_non_text_comment_is_an_error():
    result = validate_comment(12345, CommentType.COMMENT, required=False)

    assert not result["passed"]
    assert result["errors"] == ["Comment must be text"]
