import unittest

from bioq.util.randomness import _utf16_units, hash_seed, make_practice_seed, prng, seeded_shuffle


class HashSeedTests(unittest.TestCase):
    def test_known_values(self) -> None:
        self.assertEqual(hash_seed(""), 2166136261)
        self.assertEqual(hash_seed("a"), 0xE40C292C)
        self.assertEqual(hash_seed("foobar"), 0xBF9CF968)

    def test_unsigned_32_bit(self) -> None:
        for s in ("WEEKLY-HARD-2026-10-14", "x" * 200, "Zellbiologie ü"):
            h = hash_seed(s)
            self.assertGreaterEqual(h, 0)
            self.assertLess(h, 2**32)

    def test_hashes_utf16_code_units(self) -> None:
        self.assertEqual(_utf16_units("aé"), [0x61, 0xE9])
        self.assertEqual(_utf16_units("\U0001F600"), [0xD83D, 0xDE00])


class PrngTests(unittest.TestCase):
    def test_first_value_from_zero(self) -> None:
        rnd = prng(0)
        self.assertEqual(rnd(), 1013904223 / 2**32)

    def test_same_seed_same_stream(self) -> None:
        a, b = prng(12345), prng(12345)
        self.assertEqual([a() for _ in range(20)], [b() for _ in range(20)])

    def test_range(self) -> None:
        rnd = prng(hash_seed("range"))
        for _ in range(1000):
            x = rnd()
            self.assertGreaterEqual(x, 0.0)
            self.assertLess(x, 1.0)


class ShuffleTests(unittest.TestCase):
    def test_deterministic_permutation(self) -> None:
        items = list(range(30))
        a = seeded_shuffle(items, "WEEKLY-FINAL-2026-10-14")
        b = seeded_shuffle(items, "WEEKLY-FINAL-2026-10-14")
        self.assertEqual(a, b)
        self.assertEqual(sorted(a), items)
        self.assertEqual(items, list(range(30)))

    def test_small_inputs(self) -> None:
        self.assertEqual(seeded_shuffle([], "s"), [])
        self.assertEqual(seeded_shuffle(["only"], "s"), ["only"])

    def test_practice_seed_shape(self) -> None:
        seed = make_practice_seed()
        self.assertTrue(seed.startswith("NORMAL-"))
        self.assertLess(int(seed.split("-", 1)[1]), 2**32)


if __name__ == "__main__":
    unittest.main()
