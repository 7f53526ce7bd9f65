"""
Tests for function configuration validation and normalization.
"""
import pytest

from function_hub.schemas.function import (
    FunctionConfig,
    SourceType,
    validate_function_config,
)


def _with(payload, **changes):
    candidate = dict(payload)
    candidate.update(changes)
    return candidate


class TestValidRecords:

    def test_complete_record_is_valid(self, valid_payload):
        result = validate_function_config(valid_payload)

        assert result.valid
        assert result.errors == {}
        assert isinstance(result.config, FunctionConfig)
        assert result.config.name == "resize-image_v2"
        assert result.config.source_type == SourceType.INLINE

    def test_defaults_are_applied(self):
        result = validate_function_config(
            {"name": "minimal", "runtime": "nodejs18.x", "inlineCode": "exports.handler = () => 1;"}
        )

        assert result.valid
        config = result.config
        assert config.source_type == SourceType.INLINE
        assert config.handler == "index.handler"
        assert config.timeout == 30
        assert config.memory == 128
        assert config.input_schema == "{}"
        assert config.output_schema == "{}"
        assert config.description is None

    def test_empty_optional_strings_become_absent(self, valid_payload):
        result = validate_function_config(_with(valid_payload, description=""))

        config = result.config
        assert config.description is None
        assert config.repo_url is None
        assert config.branch is None
        assert config.file_path is None
        assert config.credential_id is None

    def test_snake_case_keys_are_accepted(self):
        result = validate_function_config(
            {
                "name": "snake_keys",
                "runtime": "nodejs18.x",
                "source_type": "inline",
                "inline_code": "exports.handler = () => 1;",
                "credential_id": "cred_abc",
            }
        )

        assert result.valid
        assert result.config.credential_id == "cred_abc"

    def test_unknown_keys_are_ignored(self, valid_payload):
        candidate = _with(valid_payload, id="fn-123", createdAt="2025-01-01T00:00:00Z", status="draft")

        assert validate_function_config(candidate).valid

    def test_integral_float_is_coerced(self, valid_payload):
        result = validate_function_config(_with(valid_payload, timeout=45.0, memory=512.0))

        assert result.config.timeout == 45
        assert isinstance(result.config.timeout, int)
        assert result.config.memory == 512

    def test_config_is_immutable(self, valid_payload):
        config = validate_function_config(valid_payload).config

        with pytest.raises(Exception):
            config.name = "renamed"

    def test_to_wire_uses_camel_case(self, valid_payload):
        wire = validate_function_config(valid_payload).config.to_wire()

        assert wire["sourceType"] == "inline"
        assert wire["inlineCode"] == valid_payload["inlineCode"]
        assert "source_type" not in wire


class TestName:

    @pytest.mark.parametrize("name", ["abc", "a" * 50, "my-fn_1", "UPPER-case-42", "---"])
    def test_valid_names(self, valid_payload, name):
        assert validate_function_config(_with(valid_payload, name=name)).valid

    @pytest.mark.parametrize(
        "name, message",
        [
            ("ab", "Name must be at least 3 characters"),
            ("", "Name must be at least 3 characters"),
            ("a" * 51, "Name cannot exceed 50 characters"),
            ("bad name", "Name can only contain letters, numbers, underscores, and hyphens"),
            ("fn.v1", "Name can only contain letters, numbers, underscores, and hyphens"),
            ("abc\n", "Name can only contain letters, numbers, underscores, and hyphens"),
            ("émoji", "Name can only contain letters, numbers, underscores, and hyphens"),
        ],
    )
    def test_invalid_names(self, valid_payload, name, message):
        result = validate_function_config(_with(valid_payload, name=name))

        assert not result.valid
        assert result.errors == {"name": message}

    def test_missing_name(self, valid_payload):
        candidate = dict(valid_payload)
        del candidate["name"]

        assert validate_function_config(candidate).errors == {"name": "Name is required"}


class TestNumericLimits:

    @pytest.mark.parametrize("memory", list(range(128, 1025, 64)))
    def test_memory_multiples_of_64_pass(self, valid_payload, memory):
        assert validate_function_config(_with(valid_payload, memory=memory)).valid

    @pytest.mark.parametrize("memory", [200, 129, 1000, 1023])
    def test_memory_not_multiple_of_64_fails_on_memory_only(self, valid_payload, memory):
        result = validate_function_config(_with(valid_payload, memory=memory))

        assert result.errors == {"memory": "Memory must be a multiple of 64 MB"}

    @pytest.mark.parametrize(
        "memory, message",
        [
            (64, "Memory must be at least 128 MB"),
            (0, "Memory must be at least 128 MB"),
            (1088, "Memory cannot exceed 1024 MB"),
            ("256", "Memory must be a number"),
            (True, "Memory must be a number"),
            (200.5, "Memory must be a whole number"),
        ],
    )
    def test_memory_out_of_range_or_wrong_type(self, valid_payload, memory, message):
        assert validate_function_config(_with(valid_payload, memory=memory)).errors == {"memory": message}

    @pytest.mark.parametrize("timeout", [1, 2, 30, 299, 300])
    def test_timeout_in_range_passes(self, valid_payload, timeout):
        assert validate_function_config(_with(valid_payload, timeout=timeout)).valid

    @pytest.mark.parametrize(
        "timeout, message",
        [
            (0, "Timeout must be at least 1 second"),
            (-5, "Timeout must be at least 1 second"),
            (301, "Timeout cannot exceed 300 seconds"),
            ("30", "Timeout must be a number"),
            (False, "Timeout must be a number"),
        ],
    )
    def test_timeout_out_of_range_or_wrong_type(self, valid_payload, timeout, message):
        assert validate_function_config(_with(valid_payload, timeout=timeout)).errors == {"timeout": message}


class TestHandlerAndRuntime:

    @pytest.mark.parametrize("handler", ["index.handler", "main", "app.v2-handler_x"])
    def test_valid_handlers(self, valid_payload, handler):
        assert validate_function_config(_with(valid_payload, handler=handler)).valid

    def test_empty_handler_is_required(self, valid_payload):
        result = validate_function_config(_with(valid_payload, handler=""))

        assert result.errors == {"handler": "Handler is required"}

    @pytest.mark.parametrize("handler", ["src/index.handler", "index.handler\n", "index handler"])
    def test_handler_outside_charset_is_rejected(self, valid_payload, handler):
        result = validate_function_config(_with(valid_payload, handler=handler))

        assert result.errors == {"handler": "Handler format invalid (e.g., index.handler)"}

    def test_unsupported_runtime_is_a_configuration_error(self, valid_payload):
        result = validate_function_config(_with(valid_payload, runtime="python3.11"))

        assert result.errors == {"runtime": "Invalid runtime selected"}
        assert result.configuration_errors == {"runtime": "Invalid runtime selected"}

    def test_missing_runtime_is_a_configuration_error(self, valid_payload):
        candidate = dict(valid_payload)
        del candidate["runtime"]

        result = validate_function_config(candidate)

        assert result.configuration_errors == {"runtime": "Invalid runtime selected"}

    def test_supported_runtimes_can_be_extended(self, valid_payload):
        result = validate_function_config(
            _with(valid_payload, runtime="python3.11"), supported_runtimes=["nodejs18.x", "python3.11"]
        )

        assert result.valid
        assert result.config.runtime == "python3.11"

    def test_empty_runtime_set_accepts_nothing(self, valid_payload):
        result = validate_function_config(valid_payload, supported_runtimes=[])

        assert result.configuration_errors == {"runtime": "Invalid runtime selected"}

    def test_field_errors_are_not_configuration_errors(self, valid_payload):
        result = validate_function_config(_with(valid_payload, name="x"))

        assert result.configuration_errors == {}


class TestInlineCodeRule:

    @pytest.mark.parametrize("code", ["", "   ", "\n\t  \n", None])
    def test_inline_source_requires_code(self, valid_payload, code):
        result = validate_function_config(_with(valid_payload, inlineCode=code))

        assert result.errors == {"inlineCode": "Function code cannot be empty when using Inline Code source"}

    def test_missing_code_defaults_to_inline_and_fails(self, valid_payload):
        candidate = dict(valid_payload)
        del candidate["inlineCode"]
        del candidate["sourceType"]

        result = validate_function_config(candidate)

        assert list(result.errors) == ["inlineCode"]

    def test_error_is_reported_alongside_other_field_errors(self, valid_payload):
        result = validate_function_config(_with(valid_payload, inlineCode="", memory=200, name="x"))

        assert set(result.errors) == {"inlineCode", "memory", "name"}
        assert "sourceType" not in result.errors

    def test_github_source_accepts_empty_code(self, github_payload):
        result = validate_function_config(github_payload)

        assert result.valid
        assert result.config.source_type == SourceType.GITHUB
        assert result.config.inline_code == ""

    def test_github_fields_are_not_enforced(self, github_payload):
        candidate = _with(github_payload, repoUrl="", branch="", filePath="")

        assert validate_function_config(candidate).valid

    def test_rule_is_skipped_when_source_type_is_invalid(self, valid_payload):
        result = validate_function_config(_with(valid_payload, sourceType="svn", inlineCode=""))

        assert result.errors == {"sourceType": "Source type must be 'inline' or 'github'"}


class TestSchemaFields:

    @pytest.mark.parametrize(
        "schema",
        ['{"type":"object"}', "{}", '{"type": "object", "properties": {"a": {"type": "string"}}}'],
    )
    def test_json_objects_pass(self, valid_payload, schema):
        result = validate_function_config(_with(valid_payload, inputSchema=schema, outputSchema=schema))

        assert result.valid
        assert result.config.input_schema == schema

    @pytest.mark.parametrize("schema", ["", "   ", None])
    def test_empty_schema_defaults_to_empty_object(self, valid_payload, schema):
        result = validate_function_config(_with(valid_payload, inputSchema=schema))

        assert result.valid
        assert result.config.input_schema == "{}"

    @pytest.mark.parametrize(
        "schema, message",
        [
            ("[]", "Must be a JSON object"),
            ("42", "Must be a JSON object"),
            ('"object"', "Must be a JSON object"),
            ("null", "Must be a JSON object"),
            ("not json", "Must be valid JSON or empty"),
            ('{"type": ', "Must be valid JSON or empty"),
        ],
    )
    def test_invalid_schemas(self, valid_payload, schema, message):
        result = validate_function_config(_with(valid_payload, outputSchema=schema))

        assert result.errors == {"outputSchema": message}

    def test_deeply_nested_schema_is_invalid(self, valid_payload):
        result = validate_function_config(_with(valid_payload, inputSchema="[" * 200000))

        assert result.errors == {"inputSchema": "Must be valid JSON or empty"}


class TestUntrustedInput:

    @pytest.mark.parametrize("candidate", [None, [], "name=abc", 42])
    def test_non_mapping_is_rejected(self, candidate):
        result = validate_function_config(candidate)

        assert not result.valid
        assert "record" in result.errors

    def test_wrong_types_are_reported_per_field(self, valid_payload):
        result = validate_function_config(
            _with(valid_payload, name=123, description=["x"], credentialId=7)
        )

        assert result.errors == {
            "name": "Name must be a string",
            "description": "Description must be a string",
            "credentialId": "credentialId must be a string",
        }

    def test_description_length(self, valid_payload):
        assert validate_function_config(_with(valid_payload, description="d" * 255)).valid

        result = validate_function_config(_with(valid_payload, description="d" * 256))
        assert result.errors == {"description": "Description cannot exceed 255 characters"}


class TestNormalizationIdempotence:

    @pytest.mark.parametrize(
        "changes",
        [
            {},
            {"description": "", "inputSchema": "", "outputSchema": None},
            {"timeout": 300.0, "memory": 1024},
            {"handler": None, "credentialId": "cred_def"},
        ],
    )
    def test_revalidating_normalized_output_is_valid(self, valid_payload, changes):
        first = validate_function_config(_with(valid_payload, **changes))

        second = validate_function_config(first.config.to_wire())

        assert second.valid
        assert second.config == first.config

    def test_github_record_round_trips(self, github_payload):
        first = validate_function_config(github_payload)

        assert validate_function_config(first.config).config == first.config
