import unittest

from app.core.name_keys import canonicalize_text, per_container_key, relaxed_key, strict_key


class NameKeyTest(unittest.TestCase):
    def test_canonicalize_text_rewrites_unit_words(self):
        self.assertEqual(canonicalize_text("  Pen && Ink 10 PCE "), "pen and ink 10 pcs")
        self.assertEqual(canonicalize_text("Sparkler 30 CMS"), "sparkler 30 cm")
        self.assertEqual(canonicalize_text(None), "")

    def test_strict_key_drops_punctuation_and_case(self):
        self.assertEqual(strict_key("Pen Blue"), "penblue")
        self.assertEqual(strict_key("PEN-BLUE."), "penblue")
        self.assertEqual(strict_key("Tape 2 pc"), strict_key("tape 2 PCS"))
        self.assertEqual(strict_key("   "), "")
        self.assertEqual(strict_key(None), "")

    def test_relaxed_key_strips_shot_counts(self):
        self.assertEqual(relaxed_key("Rocket 160 Shots"), "rocket")
        self.assertEqual(relaxed_key("Rocket 200shot"), "rocket")
        self.assertEqual(relaxed_key("Rocket Shots"), "rocket")
        self.assertEqual(relaxed_key("Pen Blue"), strict_key("Pen Blue"))

    def test_per_container_key(self):
        self.assertEqual(per_container_key(10), "10")
        self.assertEqual(per_container_key(10.0), "10")
        self.assertEqual(per_container_key(" 12 "), "12")
        self.assertEqual(per_container_key("1,200"), "1200")
        self.assertEqual(per_container_key(2.5), "2.5")
        self.assertEqual(per_container_key(None), "")
        self.assertEqual(per_container_key(True), "")
        self.assertEqual(per_container_key("abc"), "")
        self.assertEqual(per_container_key(float("nan")), "")


if __name__ == "__main__":
    unittest.main()
