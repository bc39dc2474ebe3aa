"""Tests for the langfield detection core."""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from langfield.detect.detector import Detector, DetectorState, detect_language
from langfield.detect.errors import (
    DetectorStateError,
    DuplicateLanguageError,
    ErrorKind,
    InvalidPriorError,
    NoFeaturesError,
    NoProfilesLoadedError,
    ProfileFormatError,
    ProfileLoadError,
)
from langfield.detect.language import UNKNOWN_LANG, Language
from langfield.detect.ngram import (
    DEFAULT_FOLDING,
    NGramWindow,
    Normalizer,
    iter_grams,
    load_cjk_map,
)
from langfield.detect.profile import LanguageProfile
from langfield.detect.store import ProfileStore

from conftest import make_profile


# ─── Normalizer Tests ────────────────────────────────────────────

class TestNormalizer:
    @pytest.fixture
    def normalizer(self):
        return Normalizer()

    def test_ascii_letters_kept(self, normalizer):
        assert normalizer.normalize_char("a") == "a"
        assert normalizer.normalize_char("Z") == "Z"

    def test_ascii_non_letters_fold_to_space(self, normalizer):
        for ch in "1 !?-_[`{":
            assert normalizer.normalize_char(ch) == " "

    def test_latin1_excluded(self, normalizer):
        assert normalizer.normalize_char("\u00ab") == " "
        assert normalizer.normalize_char("\u00a0") == " "
        assert normalizer.normalize_char("\u00e9") == "\u00e9"

    def test_script_folding(self, normalizer):
        assert normalizer.normalize_char("\u3044") == "\u3042"
        assert normalizer.normalize_char("\u30a4") == "\u30a2"
        assert normalizer.normalize_char("\ud55c") == "\uac00"
        assert normalizer.normalize_char("\u3106") == "\u3105"
        assert normalizer.normalize_char("\u1ec7") == "\u1ec3"

    def test_single_char_replacements(self, normalizer):
        assert normalizer.normalize_char("\u0219") == "\u015f"
        assert normalizer.normalize_char("\u021b") == "\u0163"
        assert normalizer.normalize_char("\u06cc") == "\u064a"

    def test_general_punctuation(self, normalizer):
        assert normalizer.normalize_char("\u2019") == " "
        assert normalizer.normalize_char("\u2014") == " "

    def test_vietnamese_composition(self, normalizer):
        assert normalizer.normalize("a\u0300") == "\u00e0"
        assert normalizer.normalize("\u01af\u0309") == "\u1eec"
        assert normalizer.normalize("\u00ea\u0301") == "\u1ebf"
        assert normalizer.normalize("xin cha\u0300o") == "xin ch\u00e0o"

    def test_other_combining_marks_untouched(self, normalizer):
        assert normalizer.normalize("b\u0300") == "b\u0300"

    def test_cjk_map_injection(self, tmp_path):
        path = tmp_path / "cjk.json"
        path.write_text(json.dumps(["七丁万"]), encoding="utf-8")
        mapping = load_cjk_map(path)
        assert mapping == {"七": "七", "丁": "七", "万": "七"}

        normalizer = Normalizer(DEFAULT_FOLDING.with_cjk_map(mapping))
        assert normalizer.normalize_char("丁") == "七"
        assert Normalizer().normalize_char("丁") == "丁"

    @pytest.mark.parametrize("content", [
        json.dumps({"七": "丁"}),
        json.dumps(["七丁", ""]),
        "[\"七丁\"",
    ])
    def test_cjk_map_rejects_bad_file(self, tmp_path, content):
        path = tmp_path / "cjk.json"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ProfileFormatError):
            load_cjk_map(path)

    def test_cjk_map_missing_file(self, tmp_path):
        with pytest.raises(ProfileLoadError):
            load_cjk_map(tmp_path / "missing.json")


# ─── N-gram Window Tests ─────────────────────────────────────────

class TestNGramWindow:
    def test_single_word(self):
        assert list(iter_grams("ab")) == ["a", " a", "b", "ab", " ab"]

    def test_grams_do_not_span_words(self):
        assert list(iter_grams("a b")) == ["a", " a", "a ", " a ", "b", " b"]

    def test_window_slides(self):
        grams = list(iter_grams("abcd"))
        assert "bcd" in grams
        assert "abcd" not in grams
        assert all(1 <= len(g) <= 3 for g in grams)

    def test_capitalized_word_suppressed(self):
        assert list(iter_grams("ABc")) == ["A", " A", "c", "Bc", "ABc"]

    def test_get_out_of_range(self):
        window = NGramWindow()
        window.add_char("a")
        assert window.get(0) is None
        assert window.get(4) is None
        assert window.get(3) is None

    def test_fresh_window_starts_at_sentinel(self):
        window = NGramWindow()
        assert window.get(1) is None
        window.add_char(" ")
        assert window.get(1) is None
        assert window.get(2) is None

    def test_punctuation_acts_as_boundary(self):
        assert list(iter_grams("a,b")) == list(iter_grams("a b"))


# ─── Language Profile Tests ──────────────────────────────────────

class TestLanguageProfile:
    def test_add(self):
        profile = LanguageProfile("en")
        profile.add("a")
        profile.add("a")
        profile.add("ab")
        profile.add("abcd")
        profile.add("")
        profile.add(None)
        assert profile.freq == {"a": 2, "ab": 1}
        assert profile.n_words == [2, 1, 0]

    def test_add_without_name(self):
        profile = LanguageProfile()
        profile.add("a")
        assert profile.freq == {}
        assert profile.n_words == [0, 0, 0]

    def test_update(self):
        profile = LanguageProfile("en")
        profile.update("a b")
        assert profile.freq == {"a": 1, " a": 1, "a ": 1, " a ": 1, "b": 1, " b": 1}
        assert profile.n_words == [2, 3, 1]

    def test_update_none(self):
        profile = LanguageProfile("en")
        profile.update(None)
        assert profile.n_words == [0, 0, 0]

    def test_omit_less_freq_drops_rare(self):
        profile = LanguageProfile(
            "en", freq={"a": 10, "b": 2, "ab": 3}, n_words=[12, 3, 0]
        )
        profile.omit_less_freq()
        assert profile.freq == {"a": 10, "ab": 3}
        assert profile.n_words == [10, 3, 0]

    def test_omit_less_freq_strips_latin_noise(self):
        profile = LanguageProfile(
            "ja", freq={"あ": 30, "a": 3, "ab": 4, "あa": 5}, n_words=[33, 9, 0]
        )
        profile.omit_less_freq()
        assert profile.freq == {"あ": 30}
        assert profile.n_words == [30, 0, 0]

    def test_omit_less_freq_keeps_latin_language(self):
        profile = LanguageProfile("en")
        profile.update("the cat sat on the mat " * 20)
        profile.omit_less_freq()
        assert "t" in profile.freq
        assert "the" in profile.freq

    def test_omit_less_freq_threshold_scales_with_corpus(self):
        profile = LanguageProfile(
            "en", freq={"a": 300000, "b": 199995, "c": 5, "ab": 6}, n_words=[500000, 6, 0]
        )
        profile.omit_less_freq()
        assert profile.freq == {"a": 300000, "b": 199995, "ab": 6}
        assert profile.n_words == [499995, 6, 0]

    def test_from_dict(self):
        profile = LanguageProfile.from_dict(
            {"name": "en", "freq": {"a": 3}, "n_words": [3, 0, 0]}
        )
        assert profile.name == "en"
        assert profile.total(1) == 3

    @pytest.mark.parametrize("record", [
        [],
        {"freq": {}, "n_words": [0, 0, 0]},
        {"name": "en", "freq": [], "n_words": [0, 0, 0]},
        {"name": "en", "freq": {}, "n_words": [0, 0]},
        {"name": "en", "freq": {"a": "3"}, "n_words": [3, 0, 0]},
    ])
    def test_from_dict_malformed(self, record):
        with pytest.raises(ProfileFormatError):
            LanguageProfile.from_dict(record)

    def test_save_and_load(self, tmp_path):
        profile = make_profile("ja")
        profile.save(tmp_path / "ja")
        loaded = LanguageProfile.load(tmp_path / "ja")
        assert loaded == profile

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ProfileLoadError):
            LanguageProfile.load(tmp_path / "missing")

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "en"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ProfileFormatError):
            LanguageProfile.load(path)


# ─── Profile Store Tests ─────────────────────────────────────────

class TestProfileStore:
    def test_languages_in_load_order(self, store):
        assert store.languages == ("en", "fr", "ja")
        assert len(store) == 3

    def test_languages_read_only(self, store):
        with pytest.raises(AttributeError):
            store.languages.append("xx")

    def test_table_read_only(self, store):
        with pytest.raises(TypeError):
            store.probability_table["zz"] = (0.0, 0.0, 0.0)

    def test_vector_lengths(self, store):
        assert store.probability_table
        for vector in store.probability_table.values():
            assert len(vector) == len(store.languages)

    def test_relative_frequencies(self, store):
        assert store.probability_table["a"] == pytest.approx((3 / 9, 1 / 9, 0.0))
        assert store.probability_table["あ"] == pytest.approx((0.0, 0.0, 3 / 7))
        assert "a" in store
        assert "x" not in store

    def test_duplicate_language(self):
        with pytest.raises(DuplicateLanguageError):
            ProfileStore.from_profiles([make_profile("en"), make_profile("en")])

    def test_unnamed_profile_rejected(self):
        with pytest.raises(ProfileFormatError):
            ProfileStore.from_profiles([make_profile("en"), LanguageProfile()])

    def test_new_detector_without_profiles(self):
        with pytest.raises(NoProfilesLoadedError):
            ProfileStore().new_detector()

    def test_from_directory(self, profile_dir):
        (profile_dir / ".hidden").write_text("garbage", encoding="utf-8")
        (profile_dir / "subdir").mkdir()
        store = ProfileStore.from_directory(profile_dir)
        assert store.languages == ("en", "fr", "ja")

    def test_from_directory_duplicate(self, tmp_path):
        for filename in ("en1", "en2"):
            make_profile("en").save(tmp_path / filename)
        with pytest.raises(DuplicateLanguageError):
            ProfileStore.from_directory(tmp_path)

    def test_from_directory_missing(self, tmp_path):
        with pytest.raises(ProfileLoadError):
            ProfileStore.from_directory(tmp_path / "nope")

    def test_from_directory_unreadable(self, profile_dir, monkeypatch):
        def deny(self):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(Path, "iterdir", deny)
        with pytest.raises(ProfileLoadError):
            ProfileStore.from_directory(profile_dir)

    def test_from_directory_malformed(self, profile_dir):
        (profile_dir / "xx").write_text('{"name": "xx"}', encoding="utf-8")
        with pytest.raises(ProfileFormatError) as exc_info:
            ProfileStore.from_directory(profile_dir)
        assert exc_info.value.kind is ErrorKind.PROFILE_FORMAT
        assert exc_info.value.is_load_error

    def test_from_resources(self, tmp_path, monkeypatch, profiles):
        bundle = tmp_path / "bundle_pkg"
        (bundle / "profiles").mkdir(parents=True)
        (bundle / "__init__.py").write_text("", encoding="utf-8")
        for profile in profiles:
            profile.save(bundle / "profiles" / profile.name)
        monkeypatch.syspath_prepend(str(tmp_path))

        store = ProfileStore.from_resources("ja", "en", package="bundle_pkg")
        assert store.languages == ("ja", "en")

        with pytest.raises(ProfileLoadError):
            ProfileStore.from_resources("de", package="bundle_pkg")

    def test_from_resources_missing_bundle(self):
        with pytest.raises(ProfileLoadError):
            ProfileStore.from_resources("en", package="no_such_bundle_pkg")

    def test_seed_propagates(self, store):
        store.set_seed(7)
        assert store.new_detector().seed == 7
        assert store.new_detector(seed=3).seed == 3


# ─── Detector Tests ──────────────────────────────────────────────

class TestDetector:
    @pytest.mark.parametrize("text, expected", [
        ("a", "en"),
        ("b d", "fr"),
        ("d e", "en"),
        ("ああああa", "ja"),
    ])
    def test_detect(self, store, text, expected):
        detector = store.new_detector()
        detector.append(text)
        assert detector.detect() == expected

    def test_probabilities_above_threshold(self, store):
        detector = store.new_detector(seed=1)
        detector.append("b d")
        probabilities = detector.get_probabilities()
        assert probabilities
        assert all(isinstance(c, Language) and c.prob > 0.1 for c in probabilities)
        assert [c.prob for c in probabilities] == sorted(
            (c.prob for c in probabilities), reverse=True
        )

    def test_tie_keeps_language_order(self, store):
        detector = store.new_detector(seed=5)
        detector.append("b")
        probabilities = detector.get_probabilities()
        assert [c.lang for c in probabilities] == ["en", "fr"]
        assert probabilities[0].prob == probabilities[1].prob

    @pytest.mark.parametrize("text", [
        "",
        "   ",
        "12345 !@#$",
        "http://example.com/path?q=1",
        "someone@example.com",
        "xyz",
    ])
    def test_no_features(self, store, text):
        detector = store.new_detector()
        detector.append(text)
        with pytest.raises(NoFeaturesError):
            detector.get_probabilities()

    def test_memoized(self, store):
        detector = store.new_detector()
        detector.append("b d")
        first = detector.get_probabilities()
        assert detector.state is DetectorState.CLASSIFIED
        assert detector.get_probabilities() == first

    def test_append_after_classification(self, store):
        detector = store.new_detector()
        detector.append("a")
        detector.detect()
        with pytest.raises(DetectorStateError):
            detector.append("b")

    def test_seed_is_deterministic(self, store):
        store.set_seed(42)
        results = []
        for _ in range(2):
            detector = store.new_detector()
            detector.append("a b c d e")
            results.append(detector.get_probabilities())
        assert results[0] == results[1]

    def test_unknown_when_nothing_clears_threshold(self):
        profiles = [
            LanguageProfile(f"l{i}", freq={"z": 1}, n_words=[1, 0, 0])
            for i in range(11)
        ]
        detector = ProfileStore.from_profiles(profiles).new_detector()
        detector.append("z")
        assert detector.get_probabilities() == []
        assert detector.detect() == UNKNOWN_LANG

    def test_prior_shifts_result(self, store):
        detector = store.new_detector(prior={"en": 0.1, "fr": 0.9})
        detector.append("b")
        assert detector.detect() == "fr"

    @pytest.mark.parametrize("prior", [
        {"en": -1.0, "fr": 2.0},
        {"en": 0.0, "fr": 0.0},
        {"xx": 1.0},
    ])
    def test_invalid_prior(self, store, prior):
        with pytest.raises(InvalidPriorError):
            store.new_detector(prior=prior)

    def test_max_text_length(self, store):
        detector = store.new_detector(max_text_length=5)
        detector.append("abcdefgh")
        detector.append("ijk")
        assert detector.text == "abcde"

    def test_spaces_collapsed(self, store):
        detector = store.new_detector()
        detector.append("a   b ")
        detector.append("  c")
        assert detector.text == "a b c"

    def test_urls_and_mail_masked(self, store):
        detector = store.new_detector()
        detector.append("a https://example.com/x b me@example.org c")
        assert detector.text == "a b c"

    def test_vietnamese_normalized_on_append(self, store):
        detector = store.new_detector()
        detector.append("a\u0300")
        assert detector.text == "\u00e0"

    def test_append_stream(self, store):
        detector = store.new_detector(max_text_length=8)
        detector.append_stream(io.StringIO("b d b d b d b d"))
        assert detector.text == "b d b d "
        assert detector.detect() == "fr"

    def test_latin_stripped_from_mostly_non_latin_text(self, store):
        detector = store.new_detector()
        detector.append("ああああa")
        assert detector._cleaned_text() == "ああああ"
        assert detector.text == "ああああa"

    def test_vietnamese_letters_do_not_trigger_cleaning(self, store):
        detector = store.new_detector()
        detector.append("\u1ebf\u1ed9\u1ebf\u1ed9\u1ebf a")
        assert detector._cleaned_text() == detector.text
        assert "a" in detector._cleaned_text()

    def test_latin_kept_at_two_to_one_boundary(self, store):
        detector = store.new_detector()
        detector.append("\u3042\u3042a")
        assert detector._cleaned_text() == "\u3042\u3042a"

    def test_injected_random_source(self, store):
        class CountingRandom:
            def __init__(self):
                self.draws = 0

            def gauss(self, mu, sigma):
                return mu

            def randrange(self, stop):
                self.draws += 1
                return 0

        source = CountingRandom()
        detector = store.new_detector(random_source=source, trials=2)
        detector.append("a")
        assert detector.detect() == "en"
        assert source.draws > 0

    def test_detector_constructed_directly(self, store):
        detector = Detector(store, alpha=1.0)
        detector.append("d e")
        assert detector.detect() == "en"


# ─── Detection Result Tests ──────────────────────────────────────

class TestDetectionResult:
    def test_classify_success(self, store):
        result = detect_language(store, "b d", seed=3)
        assert result.success
        assert result.language == "fr"
        assert result.error is None
        assert result.probabilities[0].lang == "fr"

    def test_classify_no_features(self, store):
        result = detect_language(store, "")
        assert not result.success
        assert result.is_unknown
        assert result.error is ErrorKind.NO_FEATURES
        assert result.probabilities == []

    def test_language_str(self):
        assert str(Language("en", 0.5)) == "en:0.5"
