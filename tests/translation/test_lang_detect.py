"""Tests for script-based language detection."""

from modsync.translation.lang_detect import detect_language, needs_translation_language


class TestDetectLanguage:
    def test_korean(self):
        assert detect_language("더 나은 무기") == "ko"

    def test_chinese(self):
        assert detect_language("更好的武器") == "zh"

    def test_japanese_kana(self):
        assert detect_language("より良い武器") == "ja"

    def test_japanese_katakana_only(self):
        assert detect_language("スーパーモッド") == "ja"

    def test_english_default(self):
        assert detect_language("Better Weapons", "Adds new guns.") == "en"

    def test_empty_is_english(self):
        assert detect_language("", "") == "en"

    def test_description_is_considered(self):
        assert detect_language("Better Weapons v2", "무기를 추가합니다") == "ko"

    def test_korean_wins_over_ideographs(self):
        assert detect_language("韓國語 한국어") == "ko"

    def test_kana_wins_over_ideographs(self):
        assert detect_language("武器", "新しい武器を追加") == "ja"

    def test_mixed_latin_and_chinese(self):
        assert detect_language("Mod 汉化版") == "zh"


class TestNeedsTranslationLanguage:
    def test_foreign_language(self):
        assert needs_translation_language("zh", "en") is True

    def test_same_language(self):
        assert needs_translation_language("en", "en") is False

    def test_case_insensitive(self):
        assert needs_translation_language("EN", "en") is False

    def test_unknown_language(self):
        assert needs_translation_language(None, "en") is False
        assert needs_translation_language("", "en") is False
