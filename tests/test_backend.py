import json

from fusion.backend import ParseErrorKind, parse_backend_confirmation


def test_parses_hazard_labels():
    result = parse_backend_confirmation('{"hazards": ["Car", " DOG "]}')

    assert result.ok
    assert result.labels == frozenset({"car", "dog"})


def test_accepts_bytes_and_decoded_objects():
    assert parse_backend_confirmation(b'{"hazards": ["bus"]}').labels == frozenset({"bus"})
    assert parse_backend_confirmation({"hazards": ["bus"], "guidance": "keep left"}).labels == frozenset({"bus"})


def test_unwraps_analysis_string():
    payload = {"analysis": json.dumps({"hazards": ["Bicycle"]})}

    assert parse_backend_confirmation(payload).labels == frozenset({"bicycle"})


def test_missing_hazards_key_is_an_empty_confirmation():
    result = parse_backend_confirmation('{"guidance": "continue"}')

    assert result.ok
    assert result.labels == frozenset()


def test_missing_payload():
    for raw in (None, "", b"  "):
        result = parse_backend_confirmation(raw)
        assert result.error == ParseErrorKind.MISSING
        assert result.labels == frozenset()


def test_invalid_json():
    result = parse_backend_confirmation("{not json")

    assert result.error == ParseErrorKind.INVALID_JSON
    assert result.labels == frozenset()


def test_schema_mismatch():
    for raw in ('{"hazards": "car"}', '["car"]', '{"hazards": [{"label": "car"}]}'):
        result = parse_backend_confirmation(raw)
        assert result.error == ParseErrorKind.SCHEMA_MISMATCH
        assert not result.ok
