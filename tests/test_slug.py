"""Tests for slug and id generation."""

from pedal_elo.core.slug import SlugGenerator, battle_storage_key


class TestSlugGenerator:
    """Tests for SlugGenerator."""

    def test_token_replaces_each_character(self):
        """Test every non-alphanumeric character becomes its own dash."""
        assert SlugGenerator().token("Electro-Harmonix & Co") == "electro-harmonix---co"

    def test_slugify_collapses_runs(self):
        assert SlugGenerator().slugify("Electro-Harmonix & Co") == "electro-harmonix-co"

    def test_pedal_id(self):
        slugs = SlugGenerator()
        assert slugs.pedal_id("Boss", "DS-1 Distortion", "boss-ds-1") == (
            "boss__ds-1-distortion__boss-ds-1"
        )

    def test_pedal_id_missing_fields(self):
        assert SlugGenerator().pedal_id(None, None, "file") == "____file"

    def test_default_filename(self):
        assert SlugGenerator().default_filename("MXR", "Phase 90") == "mxr-phase-90"
        assert SlugGenerator().default_filename(None, None) == "unknown-pedal"

    def test_truncation(self):
        """Test slug is truncated to max length."""
        assert SlugGenerator(max_length=5).token("abcdefgh") == "abcde"
        assert SlugGenerator().truncate("abcdefgh") == "abcdefgh"


class TestBattleStorageKey:
    """Tests for brand battle keys."""

    def test_order_independent(self):
        assert battle_storage_key("Boss", "MXR") == battle_storage_key("MXR", "Boss")

    def test_format(self):
        assert battle_storage_key("TC Electronic", "Boss") == "boss-vs-tc-electronic"
