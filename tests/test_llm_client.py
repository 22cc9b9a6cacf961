import dataclasses
import unittest
from types import SimpleNamespace
from unittest import mock

import openai

from llmchess_arena import llm_client
from llmchess_arena.exceptions import AuthError, UpstreamError

MESSAGES = [{"role": "user", "content": "your move"}]


def _response(content=None, reasoning=None, usage=None, choices=True):
    message = SimpleNamespace(content=content, reasoning=reasoning)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message)] if choices else [],
        usage=usage,
    )


class RequestParamsTests(unittest.TestCase):
    def test_defaults(self):
        params = llm_client.request_params("openai/gpt-4o-mini")
        self.assertEqual(params, {"model": "openai/gpt-4o-mini", "max_tokens": 800, "temperature": 0.8})

    def test_qwen_tuning_and_provider_pinning(self):
        params = llm_client.request_params("qwen/qwen3-32b:cerebras")
        self.assertEqual(params["model"], "qwen/qwen3-32b")
        self.assertEqual(params["max_tokens"], 1000)
        self.assertEqual(params["temperature"], 0.7)
        self.assertEqual(params["extra_body"], {"provider": {"order": ["cerebras"], "allow_fallbacks": False}})

    def test_split_model_identifier(self):
        self.assertEqual(llm_client.split_model_identifier("a/b"), ("a/b", None))
        self.assertEqual(llm_client.split_model_identifier("a/b:groq"), ("a/b", "groq"))
        self.assertEqual(llm_client.split_model_identifier("a/b:"), ("a/b", None))


class CompleteTests(unittest.TestCase):
    def setUp(self):
        self.client = mock.Mock()
        patcher = mock.patch.object(llm_client, "_client_for", return_value=self.client)
        self.client_for = patcher.start()
        self.addCleanup(patcher.stop)
        settings = mock.patch.object(llm_client, "SETTINGS", dataclasses.replace(llm_client.SETTINGS, llm_api_key="server-key"))
        settings.start()
        self.addCleanup(settings.stop)

    def test_returns_content_and_usage(self):
        self.client.chat.completions.create.return_value = _response(
            content="Thinking...\n### MOVE ###\ne4",
            usage={"prompt_tokens": 10, "completion_tokens": 5, "details": None},
        )
        out = llm_client.complete("openai/gpt-4o:azure", MESSAGES)
        self.assertEqual(out.text, "Thinking...\n### MOVE ###\ne4")
        self.assertEqual(out.usage, {"prompt_tokens": 10, "completion_tokens": 5})
        self.client_for.assert_called_once_with("server-key")
        kwargs = self.client.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "openai/gpt-4o")
        self.assertEqual(kwargs["messages"], MESSAGES)
        self.assertEqual(kwargs["extra_body"]["provider"]["order"], ["azure"])

    def test_caller_key_takes_precedence(self):
        self.client.chat.completions.create.return_value = _response(content="e4")
        llm_client.complete("m", MESSAGES, api_key="user-key")
        self.client_for.assert_called_once_with("user-key")

    def test_reasoning_used_when_content_empty(self):
        self.client.chat.completions.create.return_value = _response(content="", reasoning="### MOVE ###\nd4")
        self.assertEqual(llm_client.complete("m", MESSAGES).text, "### MOVE ###\nd4")

    def test_content_preferred_over_reasoning(self):
        self.client.chat.completions.create.return_value = _response(content="answer", reasoning="scratch")
        self.assertEqual(llm_client.complete("m", MESSAGES).text, "answer")

    def test_list_content_parts_are_joined(self):
        parts = [{"type": "text", "text": "first"}, {"type": "image_url"}, SimpleNamespace(text="second")]
        self.client.chat.completions.create.return_value = _response(content=parts)
        self.assertEqual(llm_client.complete("m", MESSAGES).text, "first\nsecond")

    def test_missing_choices_is_upstream_error(self):
        self.client.chat.completions.create.return_value = _response(choices=False)
        with self.assertRaises(UpstreamError):
            llm_client.complete("m", MESSAGES)

    def test_empty_text_is_upstream_error(self):
        self.client.chat.completions.create.return_value = _response(content="   ", reasoning=None)
        with self.assertRaises(UpstreamError):
            llm_client.complete("m", MESSAGES)

    def test_sdk_errors_are_wrapped(self):
        self.client.chat.completions.create.side_effect = openai.OpenAIError("boom")
        with self.assertRaises(UpstreamError) as ctx:
            llm_client.complete("m", MESSAGES)
        self.assertIn("boom", str(ctx.exception))

    def test_missing_key_is_auth_error(self):
        with mock.patch.object(llm_client, "SETTINGS", dataclasses.replace(llm_client.SETTINGS, llm_api_key="")):
            with self.assertRaises(AuthError):
                llm_client.complete("m", MESSAGES)
        self.client.chat.completions.create.assert_not_called()

    def test_model_required(self):
        with self.assertRaises(ValueError):
            llm_client.complete("", MESSAGES)


if __name__ == "__main__":
    unittest.main()
