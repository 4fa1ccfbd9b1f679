# test_ai_summarizer.py
import unittest
from datetime import date, datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import httpx
import openai
import requests
from google.genai import errors as genai_errors

import ai_summarizer
from ai_summarizer import (
    SummaryService,
    clean_ai_output,
    generate_with_fallback,
    get_llm_provider,
)
from config import GlobalConfig
from context import RunContext
from errors import (
    ConfigurationError,
    EndpointUnreachableError,
    InvalidCredentialError,
    ModelNotFoundError,
    ProviderError,
    QuotaExceededError,
)
from llm.gemini_provider import GeminiProvider, classify_gemini_error
from llm.ollama_provider import OllamaProvider, check_ollama_connection
from llm.prompt_builder import build_prompt, get_prompt_templates
from llm.template_provider import TemplateProvider, summarize_message
from models import Commit, FileChange

DAY = date(2024, 6, 10)


def make_commits():
    login = FileChange("src/auth/login.py", 30, 2)
    session_a = FileChange("src/auth/session.py", 10, 1)
    session_b = FileChange("src/auth/session.py", 5, 1)
    when = datetime(2024, 6, 10, 12, tzinfo=timezone.utc)
    return [
        Commit("a1b2c3d", "feat: add login", "Dev", "dev@example.com", when,
               (login, session_a), 40, 3,
               "2 files changed, 40 insertions(+), 3 deletions(-)"),
        Commit("e4f5a6b", "fix: null pointer", "Dev", "dev@example.com", when,
               (session_b,), 5, 1,
               "1 files changed, 5 insertions(+), 1 deletions(-)"),
    ]


def make_context(**overrides):
    user_config = {
        "ai_provider": "ollama",
        "ollama_url": "http://localhost:11434",
        "ollama_model": "codellama:7b",
        "gemini_api_key": None,
        "gemini_model": "gemini-2.0-flash-lite",
        "request_timeout": 60,
    }
    user_config.update(overrides.pop("user_config", {}))
    return RunContext(
        repo_path=".",
        date_input="10-06-2024",
        summary_type="quick",
        output_format="markdown",
        user_config=user_config,
        **overrides,
    )


def ollama_tags(*names):
    resp = MagicMock()
    resp.json.return_value = {"models": [{"name": n} for n in names]}
    return resp


def chat_response(text):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))]
    )


class TestTemplateProvider(unittest.TestCase):

    def setUp(self):
        self.provider = TemplateProvider({})
        self.commits = make_commits()

    def test_quick(self):
        content = self.provider.generate(self.commits, "quick", DAY)
        self.assertIn("**Key Work**: 2 commits completed", content)
        self.assertIn("**Files**: src/auth/login.py, src/auth/session.py", content)
        self.assertIn("**Stats**: 2 commits, 2 files, +45/-4 lines", content)
        self.assertIn("- 1. add login", content)
        self.assertIn("Commit: e4f5a6b", content)

    def test_detailed(self):
        content = self.provider.generate(self.commits, "detailed", DAY)
        self.assertIn("## Key Accomplishments", content)
        self.assertIn("• feat: add login", content)
        self.assertIn("- **Lines Added**: +45", content)
        self.assertIn("- **Lines Removed**: -4", content)
        self.assertIn("template-based summary", content)

    def test_detailed_lists_extra_files(self):
        files = tuple(FileChange(f"f{i}.py", 1, 0) for i in range(7))
        commit = Commit("1234567", "feat: many files", "Dev", "d@x", datetime.now(),
                        files, 7, 0, "")
        content = self.provider.generate([commit], "detailed", DAY)
        self.assertIn("f0.py, f1.py, f2.py, f3.py, f4.py and 2 more", content)

    def test_bullets(self):
        content = self.provider.generate(self.commits, "bullets", DAY)
        self.assertEqual(
            content.splitlines(),
            [
                "• feat: add login",
                "• fix: null pointer",
                "• Files modified: src/auth/login.py, src/auth/session.py",
                "• Statistics: 2 commits | 2 files | +45/-4 lines",
            ],
        )

    def test_eod(self):
        content = self.provider.generate(self.commits, "eod", DAY)
        self.assertTrue(content.startswith("**EOD Update**"))
        self.assertIn("- a1b2c3d — add login", content)
        self.assertIn("- null pointer", content)

    def test_empty_commits(self):
        for summary_type in GlobalConfig.SUMMARY_TYPES:
            content = self.provider.generate([], summary_type, DAY)
            self.assertIsInstance(content, str)
        self.assertIn("0 commits", self.provider.generate([], "bullets", DAY))

    def test_summarize_message(self):
        self.assertEqual(summarize_message("feat(auth): add login"), "add login")
        self.assertEqual(summarize_message(""), "No message")
        long_message = "fix: " + "x" * 200
        summary = summarize_message(long_message)
        self.assertEqual(len(summary), 120)
        self.assertTrue(summary.endswith("..."))


class TestPromptBuilder(unittest.TestCase):

    def test_prompts_exist_for_all_types(self):
        templates = get_prompt_templates()
        for summary_type in GlobalConfig.SUMMARY_TYPES:
            self.assertIn(summary_type, templates)
            self.assertIn("{context}", templates[summary_type])

    def test_prompt_contains_stats_and_commits(self):
        prompt = build_prompt(make_commits(), "detailed", DAY)
        self.assertIn("Date: 10-06-2024", prompt)
        self.assertIn("Number of commits: 2", prompt)
        self.assertIn("Total files changed: 2", prompt)
        self.assertIn("Total lines added: 45", prompt)
        self.assertIn("Total lines removed: 4", prompt)
        self.assertIn("src/auth/login.py (+30/-2)", prompt)
        self.assertIn("Message: fix: null pointer", prompt)

    def test_unknown_type_uses_quick_template(self):
        templates = {"quick": "Q {context}", "bullets": "B {context}"}
        self.assertTrue(build_prompt([], "weekly", DAY, templates).startswith("Q "))


class TestRegistryFactory(unittest.TestCase):

    def test_factory_builds_registered_providers(self):
        config = GlobalConfig()
        self.assertIsInstance(get_llm_provider("template", {}, config), TemplateProvider)
        self.assertIsInstance(get_llm_provider("gemini", {}, config), GeminiProvider)
        self.assertIsInstance(get_llm_provider("ollama", {}, config), OllamaProvider)

    def test_unknown_provider(self):
        with self.assertRaises(ConfigurationError):
            get_llm_provider("claude", {}, GlobalConfig())


class TestFallback(unittest.TestCase):

    def test_generation_failure_falls_back_to_template(self):
        commits = make_commits()
        provider = OllamaProvider({})
        fallback = TemplateProvider({})
        with patch.object(OllamaProvider, "generate", side_effect=TimeoutError("timed out")):
            result = generate_with_fallback(provider, fallback, commits, "bullets", DAY)

        self.assertEqual(result.provider, "template")
        self.assertEqual(result.content, fallback.generate(commits, "bullets", DAY))
        self.assertEqual(result.metadata.ai_provider, "template")
        self.assertEqual(result.metadata.model, "fallback")

    def test_metadata_matches_commits(self):
        result = generate_with_fallback(
            TemplateProvider({}), TemplateProvider({}), make_commits(), "quick", DAY
        )
        self.assertEqual(result.metadata.commits_analyzed, 2)
        self.assertEqual(result.metadata.total_files, 2)
        self.assertEqual(result.metadata.total_insertions, 45)
        self.assertEqual(result.metadata.total_deletions, 4)

    def test_clean_ai_output(self):
        self.assertEqual(clean_ai_output("```markdown\n## Done\n- a\n```"), "## Done\n- a")
        self.assertEqual(clean_ai_output("```\ntext\n```\n"), "text")
        self.assertEqual(clean_ai_output("  plain text \n"), "plain text")
        self.assertEqual(clean_ai_output("use `code` inline"), "use `code` inline")


class TestGeminiProvider(unittest.TestCase):

    def _service(self, **user_config):
        return SummaryService(
            make_context(user_config={"ai_provider": "gemini", **user_config})
        )

    @patch("llm.gemini_provider.genai.Client")
    def test_success_cleans_fences(self, client_cls):
        client_cls.return_value.models.generate_content.return_value = SimpleNamespace(
            text="```markdown\n**Work**: login shipped\n```"
        )

        result = self._service(gemini_api_key="AIza-test-key").generate(
            make_commits(), "quick", DAY
        )

        self.assertEqual(result.provider, "gemini")
        self.assertEqual(result.content, "**Work**: login shipped")
        self.assertEqual(result.metadata.model, "gemini-2.0-flash-lite")
        kwargs = client_cls.call_args.kwargs
        self.assertEqual(kwargs["api_key"], "AIza-test-key")
        self.assertEqual(kwargs["http_options"].timeout, 60000)
        call = client_cls.return_value.models.generate_content.call_args
        self.assertEqual(call.kwargs["model"], "models/gemini-2.0-flash-lite")
        self.assertIn("Number of commits: 2", call.kwargs["contents"])

    @patch("llm.gemini_provider.genai.Client")
    def test_quota_error_falls_back(self, client_cls):
        client_cls.return_value.models.generate_content.side_effect = (
            genai_errors.ClientError(
                429,
                {"error": {"code": 429, "message": "Quota exceeded", "status": "RESOURCE_EXHAUSTED"}},
            )
        )

        with self.assertLogs("ai_summarizer", level="WARNING") as logs:
            result = self._service(gemini_api_key="AIza-test-key").generate(
                make_commits(), "bullets", DAY
            )

        self.assertEqual(result.provider, "template")
        self.assertIn("quota", "\n".join(logs.output).lower())

    @patch("llm.gemini_provider.genai.Client")
    def test_missing_key_is_fatal_before_any_call(self, client_cls):
        with patch.object(GlobalConfig, "GEMINI_API_KEY", ""):
            with self.assertRaises(ConfigurationError):
                self._service().generate(make_commits(), "quick", DAY)
        client_cls.assert_not_called()

    def test_key_from_environment(self):
        with patch.object(GlobalConfig, "GEMINI_API_KEY", "env-key"):
            self.assertEqual(GeminiProvider({"gemini_api_key": None}).api_key, "env-key")
            self.assertEqual(GeminiProvider({"gemini_api_key": "cfg"}).api_key, "cfg")

    @patch("llm.gemini_provider.genai.Client")
    def test_qualified_model_name_is_not_prefixed_twice(self, client_cls):
        client_cls.return_value.models.generate_content.return_value = SimpleNamespace(text="ok")
        provider = GeminiProvider(
            {"gemini_api_key": "AIza-test-key", "gemini_model": "models/gemini-1.5-pro"}
        )

        provider.generate(make_commits(), "quick", DAY)

        call = client_cls.return_value.models.generate_content.call_args
        self.assertEqual(call.kwargs["model"], "models/gemini-1.5-pro")
        self.assertEqual(GeminiProvider({"gemini_model": "gemini-pro"}).model_path, "models/gemini-pro")

    def test_classify_errors(self):
        quota = SimpleNamespace(code=429, status="RESOURCE_EXHAUSTED")
        self.assertIsInstance(classify_gemini_error(quota), QuotaExceededError)
        self.assertIsInstance(
            classify_gemini_error(Exception("You exceeded your current quota")),
            QuotaExceededError,
        )
        self.assertIsInstance(
            classify_gemini_error(SimpleNamespace(code=403, status="PERMISSION_DENIED")),
            InvalidCredentialError,
        )
        self.assertIsInstance(
            classify_gemini_error(Exception("API_KEY_INVALID")), InvalidCredentialError
        )
        other = classify_gemini_error(Exception("internal"))
        self.assertIs(type(other), ProviderError)


class TestOllamaProvider(unittest.TestCase):

    def _service(self, **overrides):
        return SummaryService(make_context(**overrides))

    @patch("llm.ollama_provider.OpenAI")
    @patch("llm.ollama_provider.requests.get")
    def test_success(self, get, openai_cls):
        get.return_value = ollama_tags("codellama:7b", "llama3:8b")
        openai_cls.return_value.chat.completions.create.return_value = chat_response(
            "  • shipped login\n"
        )

        result = self._service().generate(make_commits(), "bullets", DAY)

        self.assertEqual(result.provider, "ollama")
        self.assertEqual(result.content, "• shipped login")
        self.assertEqual(result.metadata.model, "codellama:7b")
        get.assert_called_once_with("http://localhost:11434/api/tags", timeout=5)
        kwargs = openai_cls.call_args.kwargs
        self.assertEqual(kwargs["base_url"], "http://localhost:11434/v1")
        self.assertEqual(kwargs["timeout"], 60)
        self.assertEqual(kwargs["max_retries"], 0)

    @patch("llm.ollama_provider.OpenAI")
    @patch("llm.ollama_provider.requests.get")
    def test_unreachable_uses_template_without_generation(self, get, openai_cls):
        get.side_effect = requests.ConnectionError("connection refused")

        result = self._service().generate(make_commits(), "bullets", DAY)

        self.assertEqual(result.provider, "template")
        self.assertIn("2 commits | 2 files | +45/-4 lines", result.content)
        openai_cls.assert_not_called()

    @patch("llm.ollama_provider.OpenAI")
    @patch("llm.ollama_provider.requests.get")
    def test_missing_model_is_fatal(self, get, openai_cls):
        get.return_value = ollama_tags("llama3:8b")

        with self.assertRaises(ConfigurationError):
            self._service().generate(make_commits(), "quick", DAY)
        openai_cls.assert_not_called()

    @patch("llm.ollama_provider.OpenAI")
    @patch("llm.ollama_provider.requests.get")
    def test_model_removed_during_generation_falls_back(self, get, openai_cls):
        get.return_value = ollama_tags("codellama:7b")
        request = httpx.Request("POST", "http://localhost:11434/v1/chat/completions")
        openai_cls.return_value.chat.completions.create.side_effect = openai.NotFoundError(
            "model not found", response=httpx.Response(404, request=request), body=None
        )

        result = self._service().generate(make_commits(), "quick", DAY)

        self.assertEqual(result.provider, "template")

    @patch("llm.ollama_provider.OpenAI")
    def test_error_mapping(self, openai_cls):
        request = httpx.Request("POST", "http://localhost:11434/v1/chat/completions")
        create = openai_cls.return_value.chat.completions.create
        provider = OllamaProvider({})

        create.side_effect = openai.NotFoundError(
            "model not found", response=httpx.Response(404, request=request), body=None
        )
        with self.assertRaises(ModelNotFoundError):
            provider.generate(make_commits(), "quick", DAY)

        create.side_effect = openai.APIConnectionError(request=request)
        with self.assertRaises(EndpointUnreachableError):
            provider.generate(make_commits(), "quick", DAY)

        create.side_effect = None
        create.return_value = chat_response("")
        with self.assertRaises(ProviderError):
            provider.generate(make_commits(), "quick", DAY)

    @patch("llm.ollama_provider.requests.get")
    def test_check_connection(self, get):
        get.return_value = ollama_tags("codellama:latest")
        status = check_ollama_connection("http://localhost:11434/", "codellama:7b")
        self.assertTrue(status["available"])
        self.assertTrue(status["has_model"])
        self.assertEqual(status["models"], ["codellama:latest"])

        get.side_effect = requests.Timeout("slow")
        self.assertFalse(check_ollama_connection("http://localhost:11434", "x")["available"])

    @patch("llm.ollama_provider.requests.get")
    def test_check_connection_unexpected_payload(self, get):
        for payload in ([], {"models": "none"}, "ok"):
            get.return_value.json.return_value = payload
            status = check_ollama_connection("http://localhost:11434", "codellama:7b")
            self.assertFalse(status["available"])

        get.return_value.json.return_value = {"models": ["codellama:7b", {"name": "codellama:7b"}]}
        status = check_ollama_connection("http://localhost:11434", "codellama:7b")
        self.assertTrue(status["has_model"])
        self.assertEqual(status["models"], ["codellama:7b"])

    @patch("llm.ollama_provider.OpenAI")
    @patch("llm.ollama_provider.requests.get")
    def test_foreign_service_on_port_uses_template(self, get, openai_cls):
        get.return_value.json.return_value = [{"name": "codellama:7b"}]

        result = SummaryService(make_context()).generate(make_commits(), "bullets", DAY)

        self.assertEqual(result.provider, "template")
        openai_cls.assert_not_called()


class TestSummaryService(unittest.TestCase):

    @patch("llm.ollama_provider.requests.get")
    def test_no_ai_never_contacts_providers(self, get):
        service = SummaryService(make_context(no_ai=True))
        self.assertEqual(service.provider_id, "template")

        result = service.generate(make_commits(), "eod", DAY)

        self.assertEqual(result.provider, "template")
        get.assert_not_called()

    def test_provider_id_defaults(self):
        context = make_context(user_config={"ai_provider": None})
        with patch.object(GlobalConfig, "DEFAULT_LLM", "gemini"):
            self.assertEqual(SummaryService(context).provider_id, "gemini")

    def test_template_provider_configured(self):
        service = SummaryService(make_context(user_config={"ai_provider": "template"}))
        with patch.object(ai_summarizer, "generate_with_fallback",
                          wraps=ai_summarizer.generate_with_fallback) as wrapped:
            result = service.generate(make_commits(), "quick", DAY)
        self.assertEqual(result.provider, "template")
        wrapped.assert_called_once()


if __name__ == "__main__":
    unittest.main()
