import unittest
from datetime import datetime, timezone

from enkabot.character_lookup import AliasIndex
from enkabot.profiles import ProfileFetchError, format_roster, parse_snapshot

from tests.helpers import make_reference

PAYLOAD = {
    "playerInfo": {
        "nickname": "Aether",
        "level": 60,
        "signature": "Looking for my sister",
        "worldLevel": 9,
        "showAvatarInfoList": [
            {"avatarId": 10000003, "level": 70},
            {"avatarId": 10000002, "level": 90, "costumeId": 200201},
            {"avatarId": 0},
        ],
    },
    "ttl": 60,
    "uid": "100000001",
}


class ProfileSnapshotTests(unittest.TestCase):
    def test_parse_snapshot_extracts_roster(self) -> None:
        fetched_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
        snapshot = parse_snapshot("100000001", PAYLOAD, fetched_at)
        self.assertEqual(snapshot.nickname, "Aether")
        self.assertEqual(snapshot.level, 60)
        self.assertEqual(snapshot.world_level, 9)
        self.assertEqual(snapshot.fetched_at, fetched_at)
        self.assertEqual(
            [(owned.character_id, owned.level) for owned in snapshot.characters],
            [("10000003", 70), ("10000002", 90)],
        )

    def test_parse_snapshot_tolerates_hidden_showcase(self) -> None:
        snapshot = parse_snapshot("100000001", {"playerInfo": {"nickname": "Quiet"}})
        self.assertEqual(snapshot.characters, ())
        self.assertEqual(snapshot.signature, "")

    def test_parse_snapshot_rejects_malformed_payload(self) -> None:
        with self.assertRaises(ProfileFetchError):
            parse_snapshot("100000001", {"playerInfo": ["nope"]})

    def test_format_roster_uses_localized_names(self) -> None:
        index = AliasIndex(make_reference(), {})
        snapshot = parse_snapshot("100000001", PAYLOAD)

        english = format_roster(snapshot, index, "en")
        chinese = format_roster(snapshot, index, "zh-CN")

        self.assertIn("**Aether** (uid 100000001)", english)
        self.assertIn("> Looking for my sister", english)
        self.assertIn("- Jean Lv.70", english)
        self.assertIn("- 神里绫华 Lv.90", chinese)
        self.assertIn("冒险等级 60", chinese)

    def test_format_roster_reports_empty_showcase(self) -> None:
        index = AliasIndex(make_reference(), {})
        snapshot = parse_snapshot("100000001", {"playerInfo": {"nickname": "Quiet"}})
        self.assertIn("No characters are on display.", format_roster(snapshot, index, "en"))


if __name__ == "__main__":
    unittest.main()
