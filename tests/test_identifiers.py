"""Tests for gitolite identifier generation and splitting."""
from datetime import datetime, timezone

from app.auth.models import User
from app.keys.identifiers import generate_identifier, split_identifier, time_tag
from app.keys.models import KeyType

NOW = datetime(2024, 1, 2, 3, 4, 5, 678901, tzinfo=timezone.utc)


def test_time_tag_is_seconds_and_microseconds():
    assert time_tag(NOW) == "1704164645_678901"


def test_user_key_identifier():
    assert generate_identifier("alice", KeyType.USER, 0, now=NOW) == "alice@redmine_1704164645_678901"


def test_deploy_key_identifier_counts_existing_deploy_keys():
    identifier = generate_identifier("alice", KeyType.DEPLOY, 2, now=NOW)
    assert identifier == "alice_deploy_key_3@redmine_1704164645_678901"


def test_deploy_owner_segment_is_sanitized():
    identifier = generate_identifier("jane.doe+ci", KeyType.DEPLOY, 0, now=NOW)
    assert identifier == "jane_doe_ci_deploy_key_1@redmine_1704164645_678901"


def test_user_owner_tag_is_used_as_supplied():
    assert generate_identifier("jane.doe", KeyType.USER, 0, now=NOW).startswith("jane.doe@redmine_")


def test_unknown_key_type_gives_no_identifier():
    assert generate_identifier("alice", "SERVICE", 0, now=NOW) is None


def test_split_reproduces_generated_identifier():
    for key_type in (KeyType.USER, KeyType.DEPLOY):
        identifier = generate_identifier("alice", key_type, 4)
        owner, location = split_identifier(identifier)
        assert f"{owner}@{location}" == identifier
        assert location.startswith("redmine_")


def test_split_happens_once():
    assert split_identifier("alice@redmine_1_2@extra") == ("alice", "redmine_1_2@extra")


def test_email_style_login_splits_cleanly():
    owner_tag = User(login="jane@corp.example").access_control_login
    assert owner_tag == "jane_corp_example"

    identifier = generate_identifier(owner_tag, KeyType.USER, 0, now=NOW)
    assert split_identifier(identifier) == ("jane_corp_example", "redmine_1704164645_678901")
