from dispatch_core.constants import MessageKey
from dispatch_core.services.template_service import TemplateService


class TestTemplateService:
    def test_builtin_keys(self) -> None:
        templates = TemplateService()

        for key in MessageKey:
            assert templates.get(key.value)

    def test_format_positional_parameters(self) -> None:
        templates = TemplateService()

        assert templates.format(MessageKey.UNKNOWN_OPTION, "x, y") == "Unknown option: x, y."

    def test_overrides(self) -> None:
        templates = TemplateService({"internal.too-frequent": "Slow down, {0}."})

        assert templates.format("internal.too-frequent", "alice") == "Slow down, alice."

    def test_unknown_key_formats_to_itself(self) -> None:
        assert TemplateService().format("custom.missing") == "custom.missing"

    def test_malformed_template_is_returned_verbatim(self) -> None:
        templates = TemplateService()
        templates.set("custom.broken", "needs {0} and {1}")

        assert templates.format("custom.broken", "one") == "needs {0} and {1}"
