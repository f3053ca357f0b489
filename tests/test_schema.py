from tool_program.schema import describe_value, infer_schema, schema_to_string

# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------

def test_primitive_types():
    assert infer_schema("hello") == "string"
    assert infer_schema(42) == "number"
    assert infer_schema(3.5) == "number"
    assert infer_schema(True) == "boolean"
    assert infer_schema(False) == "boolean"

def test_null():
    assert infer_schema(None) == "null"

# ---------------------------------------------------------------------------
# Containers
# ---------------------------------------------------------------------------

def test_empty_array():
    assert infer_schema([]) == []

def test_array_uses_first_element():
    assert infer_schema(["a", "b"]) == ["string"]
    # Heterogeneous arrays are not reconciled: the first element wins.
    assert infer_schema([1, "hello", True]) == ["number"]
    assert infer_schema([True, 1]) == ["boolean"]

def test_nested_objects_and_arrays_of_objects():
    data = {
        "user": {"name": "John", "profile": {"age": 30, "verified": True}},
        "items": [{"id": 1, "name": "Item 1"}, {"id": "x"}],
        "missing": None,
    }
    assert infer_schema(data) == {
        "user": {"name": "string", "profile": {"age": "number", "verified": "boolean"}},
        "items": [{"id": "number", "name": "string"}],
        "missing": "null",
    }

def test_inference_is_stable():
    value = {"status": "ok", "count": 5, "items": ["a"]}
    expected = {"status": "string", "count": "number", "items": ["string"]}
    assert infer_schema(value) == expected
    infer_schema([1, 2])
    assert infer_schema(value) == expected

# ---------------------------------------------------------------------------
# String form
# ---------------------------------------------------------------------------

def test_compact_string_form():
    assert schema_to_string({"a": "string", "b": ["number"]}) == '{"a":"string","b":["number"]}'
    assert schema_to_string("string") == '"string"'

def test_describe_value():
    assert describe_value({"count": 5}) == '{"count":"number"}'
