import unittest

from user_api.db import InMemoryUserStore
from user_api.seed import SAMPLE_USERS, seed_sample_users


class SeedTests(unittest.TestCase):
    def test_seeds_samples_once(self):
        store = InMemoryUserStore()
        created = seed_sample_users(store)
        self.assertEqual(len(created), len(SAMPLE_USERS))
        self.assertEqual(store.count_users(), 3)

        # Re-running skips existing emails.
        self.assertEqual(seed_sample_users(store), [])
        self.assertEqual(store.count_users(), 3)

    def test_skips_only_conflicting_samples(self):
        store = InMemoryUserStore()
        store.create_user("Existing Jane", "jane@example.com", 40)
        created = seed_sample_users(store)
        self.assertEqual(
            sorted(u.email for u in created), ["john@example.com", "mike@example.com"]
        )


if __name__ == "__main__":
    unittest.main()
