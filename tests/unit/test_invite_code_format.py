import re

from trivia.leagues.invite_codes import INVITE_LENGTH, generate_invite_code, normalize_invite_code


class TestInviteCodes:
    def test_format(self):
        for _ in range(50):
            code = generate_invite_code()
            assert len(code) == INVITE_LENGTH
            assert re.fullmatch(r"[A-Z0-9]{8}", code)

    def test_codes_vary(self):
        assert len({generate_invite_code() for _ in range(20)}) > 1

    def test_normalize(self):
        assert normalize_invite_code("  ab12cd34 ") == "AB12CD34"
