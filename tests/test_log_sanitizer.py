from changelog_api.log_sanitizer import REDACTED, sanitize_for_log, sanitize_log_extra


def test_credential_fields_are_redacted() -> None:
    extra = sanitize_log_extra(authorization="Bearer gho_abc", params={"access_token": "x", "q": "repo:a/b"})

    assert extra["authorization"] == REDACTED
    assert extra["params"] == {"access_token": REDACTED, "q": "repo:a/b"}


def test_tokens_inside_free_text_are_masked() -> None:
    message = "request failed: Authorization: Bearer abc.def token=gho_123 key ghp_" + "a" * 36

    redacted = sanitize_for_log(message)

    assert "abc.def" not in redacted
    assert "gho_123" not in redacted
    assert "a" * 36 not in redacted
    assert redacted.startswith("request failed:")


def test_user_content_is_reduced_to_its_length() -> None:
    extra = sanitize_log_extra(changelog_content="# Release\n" * 10, content_length=100, body="")

    assert extra["changelog_content"] == "<100 chars omitted>"
    assert extra["content_length"] == 100
    assert extra["body"] == ""
