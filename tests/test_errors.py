"""Tests for error serialization."""

from logless.models import RESPONSE_TAG, Severity
from logless.wrapper import serialize_error


class Error(Exception):
    """Stand-in for a generic application error."""


class TestSerializeException:
    """Tests for exceptions."""

    def test_plain_error(self):
        """Test `<name>: <message>` with a stack attached."""
        serialized = serialize_error(Error("ERROR"))
        assert serialized.payload == "Error: ERROR"
        assert serialized.stack
        assert "ERROR" in serialized.stack

    def test_builtin_exception(self):
        """Test that the class name is used as the name."""
        assert serialize_error(ValueError("bad value")).payload == "ValueError: bad value"

    def test_system_error(self):
        """Test that code and syscall are appended when both are present."""
        error = SystemError("ERROR")
        error.code = "EACCESS"
        error.syscall = "Syscall"

        serialized = serialize_error(error)

        assert serialized.payload == "SystemError: ERROR code: EACCESS syscall: Syscall"
        assert serialized.stack.startswith("SystemError: ERROR")

    def test_code_without_syscall(self):
        """Test that a lone code does not change the format."""
        error = Error("ERROR")
        error.code = "EACCESS"
        assert serialize_error(error).payload == "Error: ERROR"

    def test_assigned_name(self):
        """Test that a name assigned on the instance wins over the class name."""
        error = Exception("ERROR")
        error.name = "SystemError"
        assert serialize_error(error).payload == "SystemError: ERROR"

    def test_empty_name_defaults_to_error(self):
        """Test that an empty name falls back to "Error"."""
        error = Exception("ERROR")
        error.name = ""
        assert serialize_error(error).payload == "Error: ERROR"

    def test_import_error_name_slot_ignored(self):
        """Test that ImportError.name (the module name) is not used as the error name."""
        error = ImportError("No module named 'nope'", name="nope")
        assert serialize_error(error).payload == "ImportError: No module named 'nope'"

    def test_raised_error_has_traceback(self):
        """Test that a raised exception carries its traceback."""
        try:
            raise Error("Test")
        except Error as e:
            serialized = serialize_error(e)

        assert serialized.payload == "Error: Test"
        assert serialized.stack.startswith("Traceback (most recent call last):")
        assert "test_raised_error_has_traceback" in serialized.stack


class TestSerializeOtherValues:
    """Tests for failure values that are not exceptions."""

    def test_string(self):
        """Test that a string is used verbatim with no stack."""
        serialized = serialize_error("Error As String")
        assert serialized.payload == "Error As String"
        assert serialized.stack is None

    def test_other_object(self):
        """Test that other values use their string form."""
        serialized = serialize_error({"code": 42})
        assert serialized.payload == "{'code': 42}"
        assert serialized.stack is None


class TestToEntry:
    """Tests for SerializedError.to_entry()."""

    def test_terminal_entry(self):
        """Test that the entry is an ERROR response with the stack."""
        entry = serialize_error(Error("ERROR")).to_entry()
        assert entry.severity == Severity.ERROR
        assert entry.tags == (RESPONSE_TAG,)
        assert entry.payload == "Error: ERROR"
        assert entry.stack

    def test_terminal_entry_without_stack(self):
        """Test that non-exception failures have no stack on the wire."""
        entry = serialize_error("Error As String").to_entry()
        assert "stack" not in entry.to_wire()
