import logging

import pytest

from url_metrics.errors import StructuralValidationError
from url_metrics.validation import compile_schema, validate_value


def _object(properties, **extra):
    return {"type": "object", "properties": properties, **extra}


def test_compile_requires_object_schema():
    with pytest.raises(ValueError):
        compile_schema({"type": "array"})


def test_required_list_form_is_honoured():
    schema = _object({"name": {"type": "string"}}, required=["name"])

    with pytest.raises(StructuralValidationError, match="name: Field required"):
        validate_value({}, schema)


def test_optional_properties_are_omitted_when_absent():
    schema = _object({"name": {"type": "string"}}, additionalProperties=False)

    assert validate_value({}, schema) == {}


def test_open_objects_keep_additional_properties():
    schema = _object({"name": {"type": "string"}})

    assert validate_value({"name": "a", "other": 1}, schema) == {"name": "a", "other": 1}


def test_closed_objects_reject_additional_properties():
    schema = _object({"name": {"type": "string"}}, additionalProperties=False)

    with pytest.raises(StructuralValidationError, match="other"):
        validate_value({"other": 1}, schema)


def test_type_union():
    schema = _object({"value": {"type": ["integer", "null"]}})

    assert validate_value({"value": None}, schema) == {"value": None}
    assert validate_value({"value": 3}, schema) == {"value": 3}
    with pytest.raises(StructuralValidationError):
        validate_value({"value": "three"}, schema)


def test_draft_04_exclusive_bounds():
    schema = _object(
        {"ratio": {"type": "number", "minimum": 0, "exclusiveMinimum": True, "maximum": 1}}
    )

    assert validate_value({"ratio": 1}, schema) == {"ratio": 1.0}
    with pytest.raises(StructuralValidationError, match="ratio"):
        validate_value({"ratio": 0}, schema)


def test_numeric_exclusive_bounds():
    schema = _object({"ratio": {"type": "number", "exclusiveMaximum": 1}})

    with pytest.raises(StructuralValidationError):
        validate_value({"ratio": 1}, schema)


def test_string_constraints():
    schema = _object({"code": {"type": "string", "minLength": 2, "maxLength": 3}})

    assert validate_value({"code": "ab"}, schema) == {"code": "ab"}
    with pytest.raises(StructuralValidationError):
        validate_value({"code": "abcd"}, schema)


def test_date_time_format():
    schema = _object({"at": {"type": "string", "format": "date-time"}})

    assert validate_value({"at": "2024-01-01T00:00:00Z"}, schema) == {
        "at": "2024-01-01T00:00:00Z"
    }
    with pytest.raises(StructuralValidationError, match="at"):
        validate_value({"at": "yesterday"}, schema)


def test_array_items_and_length():
    schema = _object(
        {"tags": {"type": "array", "items": {"type": "string"}, "maxItems": 2}}
    )

    assert validate_value({"tags": ["a", "b"]}, schema) == {"tags": ["a", "b"]}
    with pytest.raises(StructuralValidationError, match=r"tags\[1\]"):
        validate_value({"tags": ["a", 2]}, schema)
    with pytest.raises(StructuralValidationError):
        validate_value({"tags": ["a", "b", "c"]}, schema)


def test_nested_defaults_are_applied():
    schema = _object(
        {
            "items": {
                "type": "array",
                "items": _object(
                    {"lazy": {"type": "boolean", "default": False}},
                    additionalProperties=False,
                ),
            }
        }
    )

    assert validate_value({"items": [{}, {"lazy": "true"}]}, schema) == {
        "items": [{"lazy": False}, {"lazy": True}]
    }


def test_property_names_that_are_not_identifiers():
    schema = _object(
        {"model_dump": {"type": "integer"}, "data-width": {"type": "integer"}},
        additionalProperties=False,
    )

    assert validate_value({"model_dump": 1, "data-width": 2}, schema) == {
        "model_dump": 1,
        "data-width": 2,
    }


@pytest.mark.parametrize("json_type", ["integer", "number"])
def test_booleans_are_not_numbers(json_type):
    schema = _object({"count": {"type": json_type, "minimum": 0}})

    with pytest.raises(StructuralValidationError, match="count"):
        validate_value({"count": True}, schema)
    assert validate_value({"count": "2"}, schema) == {"count": 2}


def test_boolean_member_of_type_union_accepts_booleans():
    schema = _object({"flag": {"type": ["integer", "boolean"]}})

    assert validate_value({"flag": True}, schema) == {"flag": True}
    assert validate_value({"flag": 3}, schema) == {"flag": 3}


def test_pattern_matches_anywhere_in_the_string():
    schema = _object({"path": {"type": "string", "pattern": "img"}})

    assert validate_value({"path": "/body/img/1"}, schema) == {"path": "/body/img/1"}
    with pytest.raises(StructuralValidationError, match="String should match pattern 'img'"):
        validate_value({"path": "/body/div"}, schema)


def test_end_anchor_does_not_match_before_trailing_newline():
    schema = _object({"code": {"type": "string", "pattern": "^[a-z]+$"}})

    assert validate_value({"code": "abc"}, schema) == {"code": "abc"}
    with pytest.raises(StructuralValidationError, match="code"):
        validate_value({"code": "abc\n"}, schema)


def test_lookaround_patterns_are_supported():
    schema = _object({"name": {"type": "string", "pattern": r"^(?!tmp)\w+(?<!_)$"}})

    assert validate_value({"name": "report"}, schema) == {"name": "report"}
    with pytest.raises(StructuralValidationError):
        validate_value({"name": "tmpfile"}, schema)
    with pytest.raises(StructuralValidationError):
        validate_value({"name": "report_"}, schema)


def test_invalid_pattern_is_ignored_with_warning(caplog):
    schema = _object({"unbalancedPatternField": {"type": "string", "pattern": "(unclosed"}})

    with caplog.at_level(logging.WARNING, logger="url_metrics.validation"):
        result = validate_value({"unbalancedPatternField": "x"}, schema)

    assert result == {"unbalancedPatternField": "x"}
    assert "(unclosed" in caplog.text


def test_non_mapping_properties_are_treated_as_absent():
    schema = _object({"meta": {"type": "object", "properties": "oops"}})

    assert validate_value({"meta": {"a": 1}}, schema) == {"meta": {"a": 1}}


def test_malformed_constraints_are_ignored():
    schema = _object(
        {
            "size": {"type": "integer", "minimum": "ten", "maximum": True},
            "label": {"type": "string", "maxLength": "3", "format": ["uuid"]},
            "tags": {"type": ["array", 7], "minItems": -2},
        },
        required=["size", 3],
    )

    assert validate_value({"size": 100, "label": "long label", "tags": []}, schema) == {
        "size": 100,
        "label": "long label",
        "tags": [],
    }


def test_equal_schemas_share_a_compiled_model():
    schema = _object({"name": {"type": "string"}}, additionalProperties=False)

    assert compile_schema(schema) is compile_schema(dict(schema))
    assert compile_schema(schema) is not compile_schema(_object({"name": {"type": "integer"}}))
