"""Unit tests for team name resolution."""

from pickboard.services.teams import TEAM_NAMES, aliases_for, display_name, mentions, resolve


class TestResolve:
    """Free text -> canonical code."""

    def test_code_and_display_name_agree_for_every_team(self):
        assert len(TEAM_NAMES) == 32
        for code, name in TEAM_NAMES.items():
            assert resolve(code.upper()) == code
            assert resolve(name.lower()) == code
            assert resolve(code.upper()) == resolve(name.lower())

    def test_empty_inputs(self):
        assert resolve("") is None
        assert resolve(None) is None
        assert resolve("   ") is None

    def test_nicknames_and_case(self):
        assert resolve("Chiefs") == "KC"
        assert resolve("49ers") == "SF"
        assert resolve("wsh") == "WAS"
        assert resolve("  Buffalo Bills ") == "BUF"
        assert resolve("kc") == "KC"

    def test_substring_fallback(self):
        assert resolve("Seattle") == "SEA"
        assert resolve("the Kansas City Chiefs offense") == "KC"

    def test_unknown_team(self):
        assert resolve("Toronto Argonauts") is None


class TestDisplayAndAliases:
    def test_display_name(self):
        assert display_name("kc") == "Kansas City Chiefs"
        assert display_name(None) is None
        assert display_name("XXX") is None

    def test_aliases_for_includes_code_and_name(self):
        out = aliases_for("BUF")
        assert "buf" in out and "BUF" in out
        assert "Buffalo Bills" in out and "bills" in out


class TestMentions:
    """Whole-word alias detection used by the relevant-game filter."""

    def test_nickname_mention(self):
        assert mentions("chiefs roll past the bills", "KC")
        assert mentions("chiefs roll past the bills", "BUF")

    def test_short_codes_do_not_match_inside_words(self):
        # "no" and "ne" are codes for New Orleans and New England
        text = "nothing new, nobody knows, none of it"
        assert not mentions(text, "NO")
        assert not mentions(text, "NE")

    def test_code_mention(self):
        assert mentions("take ne +3 this week", "NE")
