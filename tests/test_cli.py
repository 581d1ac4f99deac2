import json

from solt.cli import cli
from solt.config import load_config
from solt.services.redis_service import KeyType
from tests.conftest import seed


USERS = {"user:1": "alice", "user:2": "bob", "user:set": {"a", "b"}}


def invoke(runner, *args, **kwargs):
    return runner.invoke(cli, list(args), **kwargs)


def saved_config(solt_home):
    return load_config(solt_home / "config.json")


def test_welcome_screen(runner):
    result = invoke(runner)
    assert result.exit_code == 0
    assert "Welcome to Solt" in result.output


def test_version(runner):
    result = invoke(runner, "version")
    assert result.exit_code == 0
    assert "Version: 0.1.0" in result.output


def test_first_run_creates_default_config(runner, solt_home):
    invoke(runner, "version")
    assert saved_config(solt_home).registry.names() == ["dev", "prod", "staging"]


def test_add_environment(runner, solt_home):
    result = invoke(runner, "config", "--add-env", "qa", "--host", "qa.internal", "--port", "6380", "--db", "3")

    assert result.exit_code == 0
    assert "Environment 'qa' added successfully!" in result.output
    profile = saved_config(solt_home).registry.resolve("qa")
    assert (profile.host, profile.port, profile.db, profile.timeout) == ("qa.internal", 6380, 3, 30)


def test_set_default_and_remove(runner, solt_home):
    assert invoke(runner, "config", "--set-default", "staging").exit_code == 0
    assert saved_config(solt_home).registry.default == "staging"

    result = invoke(runner, "config", "--remove-env", "staging")
    assert result.exit_code == 0
    config = saved_config(solt_home)
    assert config.registry.default is None
    assert "staging" not in config.registry.names()


def test_remove_missing_environment_is_not_fatal(runner):
    result = invoke(runner, "config", "--remove-env", "qa")
    assert result.exit_code == 0
    assert "Environment 'qa' not found!" in result.output


def test_unknown_environment(runner, stores):
    result = invoke(runner, "-e", "qa", "keys")

    assert result.exit_code == 1
    assert "Environment 'qa' not found" in result.output
    assert "Available environments: dev, prod, staging" in result.output
    assert stores == {}


def test_malformed_config(runner, solt_home):
    (solt_home / "config.json").write_text("{broken")
    result = invoke(runner, "keys")
    assert result.exit_code == 1
    assert "Malformed configuration" in result.output


def test_show_config(runner):
    result = invoke(runner, "config")
    assert result.exit_code == 0
    assert "Default Environment: dev" in result.output
    assert "staging" in result.output


def test_connect_saves_new_environment(runner, solt_home, stores):
    result = invoke(runner, "-e", "local", "connect", "--port", "6390")

    assert result.exit_code == 0, result.output
    assert "Connected successfully!" in result.output
    assert "redis_version" in result.output
    assert "Environment 'local' saved to config" in result.output
    config = saved_config(solt_home)
    assert config.registry.default == "local"
    assert config.registry.resolve("local").port == 6390
    assert stores.at(0, port=6390).closed


def test_connect_test_failure(runner, stores):
    stores.at(0).fail_connect = True
    result = invoke(runner, "connect", "--test")
    assert result.exit_code == 1
    assert "Cannot connect" in result.output


def test_set_and_get(runner, stores):
    result = invoke(runner, "set", "greeting", "hello", "--ttl", "60")
    assert result.exit_code == 0
    assert "Successfully set key 'greeting'" in result.output
    assert "greeting" in stores.at(0).expires

    result = invoke(runner, "get", "greeting")
    assert result.exit_code == 0
    assert "hello" in result.output


def test_environment_selects_store(runner, stores):
    invoke(runner, "-e", "prod", "set", "flag", "on")
    assert stores.at(2).storage["flag"] == (KeyType.STRING, "on")
    assert "flag" not in stores.at(0).storage


def test_get_missing_key(runner):
    result = invoke(runner, "get", "missing")
    assert result.exit_code == 1
    assert "Key 'missing' not found" in result.output


def test_get_hash_field(runner, stores):
    seed(stores.at(0), {"user:1": {"name": "alice"}})
    result = invoke(runner, "get", "x", "--hash-field", "user:1:name")
    assert result.exit_code == 0
    assert "alice" in result.output


def test_hash_field_round_trip_on_key_with_colons(runner, stores):
    result = invoke(runner, "set", "x", "y", "--hash-field", "user:1:name:alice")
    assert result.exit_code == 0
    assert "Successfully set hash field 'user:1:name'" in result.output
    assert stores.at(0).storage["user:1"] == (KeyType.HASH, {"name": "alice"})

    result = invoke(runner, "get", "x", "--hash-field", "user:1:name")
    assert result.exit_code == 0
    assert "alice" in result.output


def test_set_hash_field_bad_format(runner, stores):
    result = invoke(runner, "set", "x", "y", "--hash-field", "user::alice")
    assert result.exit_code == 2
    assert stores == {}


def test_keys_lists_matches(runner, stores):
    seed(stores.at(0), {**USERS, "other": "x"})
    result = invoke(runner, "keys", "user:*")

    assert result.exit_code == 0
    assert "Found 3 keys matching pattern 'user:*'" in result.output
    assert "other" not in result.output


def test_search_count(runner, stores):
    seed(stores.at(0), USERS)
    result = invoke(runner, "search", "user:?", "--count")
    assert result.output.strip() == "2"


def test_delete_pattern_requires_confirm(runner, stores):
    store = seed(stores.at(0), USERS)

    result = invoke(runner, "delete", "--pattern", "user:*")
    assert "Use --confirm to proceed with deletion" in result.output
    assert len(store.storage) == 3

    result = invoke(runner, "delete", "--pattern", "user:*", "--confirm")
    assert "Successfully deleted 3 keys" in result.output
    assert store.storage == {}


def test_copy_with_prefix(runner, stores):
    store = seed(stores.at(0), USERS)

    result = invoke(runner, "copy", "user:*", "--prefix", "bak:")

    assert result.exit_code == 0
    assert "Copied 'user:1' -> 'bak:user:1'" in result.output
    assert "Skipped 'user:set'" in result.output
    assert "Copy operation completed. 2 of 3 keys copied." in result.output
    assert store.storage["bak:user:2"] == (KeyType.STRING, "bob")


def test_copy_prompts_for_prefix(runner, stores):
    store = seed(stores.at(0), USERS)

    result = invoke(runner, "copy", "user:1", input="backup:\n")

    assert result.exit_code == 0
    assert store.storage["backup:user:1"] == (KeyType.STRING, "alice")


def test_copy_between_environments_json(runner, stores):
    seed(stores.at(0), USERS)
    assert invoke(runner, "config", "--output-format", "json").exit_code == 0

    result = invoke(runner, "copy", "user:*", "--source-env", "dev", "--dest-env", "staging")

    assert result.exit_code == 0
    report = json.loads(result.output[result.output.index("{"):])
    assert report["attempted"] == 3
    assert report["copied"] == 2
    assert {o["status"] for o in report["outcomes"]} == {"copied", "skipped_wrong_type"}
    assert sorted(stores.at(1).storage) == ["user:1", "user:2"]


def test_copy_no_matches(runner, stores):
    seed(stores.at(0), USERS)
    result = invoke(runner, "copy", "session:*", "--prefix", "bak:")
    assert result.exit_code == 0
    assert "No keys found matching the pattern." in result.output


def test_history_redacts_passwords(runner):
    invoke(runner, "config", "--add-env", "qa", "--password", "hunter2")

    result = invoke(runner, "history")

    assert result.exit_code == 0
    assert "config --add-env qa --password ****" in result.output
    assert "hunter2" not in result.output

    invoke(runner, "history", "--clear")
    assert "Command history is empty" in invoke(runner, "history").output


def test_favorites(runner, solt_home):
    assert "Added 'user:1' to favorites" in invoke(runner, "favorites", "--add", "user:1").output
    assert "already a favorite" in invoke(runner, "favorites", "--add", "user:1").output
    assert saved_config(solt_home).favorites == ["user:1"]

    assert "user:1" in invoke(runner, "favorites", "--list").output

    invoke(runner, "favorites", "--remove", "user:1")
    assert saved_config(solt_home).favorites == []


def test_export_json(runner, stores, tmp_path):
    seed(stores.at(0), USERS)
    output = tmp_path / "export.json"

    result = invoke(runner, "export", "json", "user:*", "-o", str(output))

    assert result.exit_code == 0
    rows = json.loads(output.read_text(encoding="utf-8"))
    assert [r["key"] for r in rows] == ["user:1", "user:2", "user:set"]


def test_placeholder_commands(runner):
    result = invoke(runner, "bulk", "delete", "user:*")
    assert result.exit_code == 0
    assert "Bulk command - not yet implemented" in result.output
    assert "Debug command - not yet implemented" in invoke(runner, "debug", "ping").output
