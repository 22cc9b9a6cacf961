import random
import unittest

from llmchess_arena.exceptions import AuthError, UpstreamError
from llmchess_arena.llm_play import TurnDriver
from llmchess_arena.referee import Referee

from tests.helpers import ScriptedCompletion


class TurnDriverTests(unittest.TestCase):
    def setUp(self):
        self.sleeps = []
        self.ref = Referee()

    def _driver(self, completion, seed=7):
        return TurnDriver(
            complete_fn=completion,
            max_attempts=3,
            retry_backoff_s=1.0,
            sleep=self.sleeps.append,
            rng=random.Random(seed),
        )

    def test_first_attempt_success(self):
        completion = ScriptedCompletion(["Central control matters.\n### MOVE ###\ne4"])
        choice = self._driver(completion).play_ply(self.ref, "model-a", api_key="user-key")
        self.assertEqual(choice.move, "e4")
        self.assertEqual(choice.thinking, "Central control matters.")
        self.assertFalse(choice.resigned)
        self.assertFalse(choice.fallback)
        self.assertEqual(choice.attempts, 1)
        self.assertEqual(self.sleeps, [])
        model, messages, api_key = completion.calls[0]
        self.assertEqual(model, "model-a")
        self.assertEqual(api_key, "user-key")
        # The driver never touches the board
        self.assertEqual(len(self.ref.board.move_stack), 0)

    def test_prompt_lists_position_and_legal_moves(self):
        completion = ScriptedCompletion(["### MOVE ###\nd4"])
        self._driver(completion).play_ply(self.ref, "model-a")
        messages = completion.calls[0][1]
        self.assertEqual(messages[-1]["role"], "user")
        prompt = messages[-1]["content"]
        self.assertIn(self.ref.fen(), prompt)
        self.assertIn("Nf3", prompt)
        self.assertIn("### MOVE ###", prompt)
        self.assertIn("playing as white", prompt)
        self.assertIn("Game history so far: (none)", prompt)

    def test_prompt_includes_history(self):
        ref = Referee.from_moves(["e4", "e5"])
        completion = ScriptedCompletion(["### MOVE ###\nNf3"])
        self._driver(completion).play_ply(ref, "model-a")
        prompt = completion.calls[0][1][-1]["content"]
        self.assertIn("Game history so far: e4 e5", prompt)
        self.assertIn("move 2 of the game", prompt)

    def test_retries_after_extraction_miss_then_falls_back(self):
        completion = ScriptedCompletion(["no idea"])
        choice = self._driver(completion).play_ply(self.ref, "model-a")
        self.assertEqual(len(completion.calls), 3)
        self.assertTrue(choice.fallback)
        self.assertIn(choice.move, self.ref.legal_moves())
        self.assertEqual(choice.attempts, 3)
        self.assertTrue(choice.thinking.startswith("Failed to extract valid move from model model-a after 3 attempts."))
        self.assertIn("Last response: no idea", choice.thinking)
        self.assertEqual(self.sleeps, [1.0, 1.0])

    def test_fallback_is_uniform_over_legal_moves(self):
        legal = set(self.ref.legal_moves())
        seen = set()
        for seed in range(200):
            driver = TurnDriver(complete_fn=ScriptedCompletion(["nothing"]), max_attempts=1, retry_backoff_s=0, rng=random.Random(seed))
            seen.add(driver.play_ply(self.ref, "m").move)
        self.assertTrue(seen <= legal)
        self.assertGreater(len(seen), len(legal) // 2)

    def test_fallback_excerpt_is_truncated(self):
        long_reply = "x" * 800
        choice = self._driver(ScriptedCompletion([long_reply])).play_ply(self.ref, "model-a")
        self.assertIn("x" * 500 + "...", choice.thinking)
        self.assertNotIn("x" * 501, choice.thinking)

    def test_upstream_error_is_retried(self):
        completion = ScriptedCompletion([UpstreamError("503"), "### MOVE ###\nd4"])
        choice = self._driver(completion).play_ply(self.ref, "model-a")
        self.assertEqual(choice.move, "d4")
        self.assertEqual(choice.attempts, 2)
        self.assertEqual(self.sleeps, [1.0])

    def test_upstream_errors_on_every_attempt_fall_back(self):
        completion = ScriptedCompletion([UpstreamError("bad gateway")])
        choice = self._driver(completion).play_ply(self.ref, "model-a")
        self.assertTrue(choice.fallback)
        self.assertEqual(len(completion.calls), 3)
        self.assertTrue(choice.thinking.endswith("Last response: "))

    def test_auth_error_propagates(self):
        completion = ScriptedCompletion([AuthError("no key")])
        with self.assertRaises(AuthError):
            self._driver(completion).play_ply(self.ref, "model-a")
        self.assertEqual(len(completion.calls), 1)

    def test_resignation(self):
        completion = ScriptedCompletion(["Hopeless position.\n### MOVE ###\nresign"])
        choice = self._driver(completion).play_ply(self.ref, "model-a")
        self.assertTrue(choice.resigned)
        self.assertEqual(choice.move, "resign")
        self.assertEqual(choice.thinking, "Hopeless position.")


if __name__ == "__main__":
    unittest.main()
