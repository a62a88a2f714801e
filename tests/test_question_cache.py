"""
Unit tests for the Redis-backed question cache.
"""
import json
import unittest

from evalify.backend.services.question_cache import QuestionCache
from evalify.config import TestingSettings
from tests.fixtures import InMemoryQuestionStore, InMemoryRedis, sample_question_documents


class TestSanitizedQuestions(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.redis = InMemoryRedis()
        self.store = InMemoryQuestionStore(sample_question_documents())
        self.cache = QuestionCache(self.redis, TestingSettings())

    async def test_miss_scans_store_and_caches(self):
        questions = await self.cache.get_sanitized_questions("quiz-1", self.store)

        self.assertEqual(self.store.scans, 1)
        self.assertEqual([q["id"] for q in questions], ["q1", "q2", "q3", "q4", "q5", "q6"])
        self.assertTrue(all("answer" not in q for q in questions))
        self.assertEqual(json.loads(self.redis.data["QUIZ_quiz-1"]), questions)
        self.assertEqual(self.redis.ttls["QUIZ_quiz-1"], 5 * 60 * 60)

    async def test_hit_skips_store(self):
        await self.cache.get_sanitized_questions("quiz-1", self.store)
        await self.cache.get_sanitized_questions("quiz-1", self.store)

        self.assertEqual(self.store.scans, 1)

    async def test_prefetched_value_is_used(self):
        prefetched = [{"id": "cached", "question": "From an earlier read"}]
        questions = await self.cache.get_sanitized_questions("quiz-1", self.store, cached=prefetched)

        self.assertEqual(questions, prefetched)
        self.assertEqual(self.store.scans, 0)

    async def test_empty_quiz_is_cached_too(self):
        questions = await self.cache.get_sanitized_questions("quiz-empty", self.store)

        self.assertEqual(questions, [])
        self.assertEqual(await self.cache.get_cached_questions("quiz-empty"), [])

    async def test_invalidate_forces_rescan(self):
        await self.cache.get_sanitized_questions("quiz-1", self.store)
        await self.cache.invalidate_quiz("quiz-1")
        await self.cache.get_sanitized_questions("quiz-1", self.store)

        self.assertEqual(self.store.scans, 2)


class TestShuffledOrder(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.redis = InMemoryRedis()
        self.questions = [{"id": f"q{i}"} for i in range(10)]

    async def test_order_is_stable_once_created(self):
        cache = QuestionCache(self.redis, TestingSettings())

        first = await cache.get_or_create_shuffled_order("quiz-1", "student-1", 45, self.questions)
        second = await cache.get_or_create_shuffled_order("quiz-1", "student-1", 45, self.questions)

        self.assertEqual(first, second)
        self.assertEqual(sorted(q["id"] for q in first), sorted(q["id"] for q in self.questions))

    async def test_ttl_is_twice_the_duration(self):
        cache = QuestionCache(self.redis, TestingSettings())
        await cache.get_or_create_shuffled_order("quiz-1", "student-1", 45, self.questions)

        self.assertEqual(self.redis.ttls["QUIZ_quiz-1_student-1_questions"], 45 * 60 * 2)

    async def test_zero_duration_gets_minimum_ttl(self):
        cache = QuestionCache(self.redis, TestingSettings())
        await cache.get_or_create_shuffled_order("quiz-1", "student-1", 0, self.questions)

        self.assertEqual(self.redis.ttls["QUIZ_quiz-1_student-1_questions"], 60)

    async def test_existing_order_wins_a_race(self):
        cache = QuestionCache(self.redis, TestingSettings())
        winner = list(reversed(self.questions))
        await self.redis.set("QUIZ_quiz-1_student-1_questions", json.dumps(winner), nx=True)

        # Simulate a request that missed the cache before the winner wrote
        async def miss(quiz_id, student_id):
            return None
        cache.get_shuffled_order = miss

        order = await cache.get_or_create_shuffled_order("quiz-1", "student-1", 30, self.questions)
        self.assertEqual(order, winner)

    async def test_input_list_is_not_mutated(self):
        cache = QuestionCache(self.redis, TestingSettings())
        original = list(self.questions)
        await cache.get_or_create_shuffled_order("quiz-1", "student-1", 30, self.questions)

        self.assertEqual(self.questions, original)

    async def test_seeded_shuffle_is_reproducible(self):
        settings = TestingSettings(SEEDED_SHUFFLE=True)
        first = await QuestionCache(InMemoryRedis(), settings).get_or_create_shuffled_order(
            "quiz-1", "student-1", 30, self.questions)
        second = await QuestionCache(InMemoryRedis(), settings).get_or_create_shuffled_order(
            "quiz-1", "student-1", 30, self.questions)

        self.assertEqual(first, second)


class TestSavedResponses(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.redis = InMemoryRedis()
        self.cache = QuestionCache(self.redis, TestingSettings())

    async def test_round_trip_and_clear(self):
        self.assertIsNone(await self.cache.get_saved_responses("quiz-1", "student-1"))

        await self.cache.save_responses("quiz-1", "student-1", {"q1": "A"})
        self.assertEqual(await self.cache.get_saved_responses("quiz-1", "student-1"), {"q1": "A"})
        self.assertEqual(self.redis.ttls["response:quiz-1:student-1"], 6_000_000)

        await self.cache.clear_responses("quiz-1", "student-1")
        self.assertIsNone(await self.cache.get_saved_responses("quiz-1", "student-1"))

    async def test_responses_are_per_student(self):
        await self.cache.save_responses("quiz-1", "student-1", {"q1": "A"})

        self.assertIsNone(await self.cache.get_saved_responses("quiz-1", "student-2"))


if __name__ == '__main__':
    unittest.main()
