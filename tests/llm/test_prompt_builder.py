import json
import unittest

from commitsmith.errors import PromptTooLargeError, ValidationError
from commitsmith.llm.prompt_builder import KIND_FILES, KIND_SUGGESTIONS, PromptBuilder
from commitsmith.models import SanitizedDiff


def sanitized(path="src/app.py", changes="+x = 1\n", **kwargs):
    return SanitizedDiff(path=path, additions=kwargs.pop("additions", 1), deletions=kwargs.pop("deletions", 0), changes=changes, **kwargs)


class TestPromptBuilder(unittest.TestCase):
    def test_single_prompt_is_json_with_suggestion_format(self) -> None:
        prompt = PromptBuilder().build_single([sanitized()])
        document = json.loads(prompt)
        self.assertEqual(document["response_format"]["kind"], KIND_SUGGESTIONS)
        self.assertEqual(document["files"][0]["name"], "src/app.py")
        self.assertEqual(document["files"][0]["status"], "modified")
        self.assertIn("requirements", document)
        self.assertIn("good", document["examples"])

    def test_batch_prompt_lists_every_file_by_name(self) -> None:
        diffs = [sanitized("a.py"), sanitized("b/c.py", is_new=True)]
        document = json.loads(PromptBuilder().build_batch(diffs))
        self.assertEqual(document["response_format"]["kind"], KIND_FILES)
        self.assertEqual(set(document["response_format"]["example"]["files"]), {"a.py", "b/c.py"})
        self.assertEqual([f["name"] for f in document["files"]], ["a.py", "b/c.py"])
        self.assertEqual(document["files"][1]["status"], "new")

    def test_excerpt_is_truncated(self) -> None:
        builder = PromptBuilder(excerpt_limit=10)
        document = json.loads(builder.build_single([sanitized(changes="+" + "x" * 50)]))
        self.assertEqual(len(document["files"][0]["excerpt"]), 10)
        self.assertTrue(document["files"][0]["truncated"])

    def test_renamed_file_includes_previous_name(self) -> None:
        diff = sanitized("new.py", is_renamed=True, old_path="old.py")
        document = json.loads(PromptBuilder().build_single([diff]))
        self.assertEqual(document["files"][0]["previous_name"], "old.py")

    def test_empty_input_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            PromptBuilder().build_single([])
        with self.assertRaises(ValidationError):
            PromptBuilder().build_batch([])

    def test_oversized_prompt_is_rejected(self) -> None:
        builder = PromptBuilder(max_request_size=500)
        with self.assertRaises(PromptTooLargeError) as ctx:
            builder.build_single([sanitized()])
        self.assertEqual(ctx.exception.limit, 500)
        self.assertIsInstance(ctx.exception, ValidationError)
        self.assertFalse(ctx.exception.recoverable)


if __name__ == "__main__":
    unittest.main()
