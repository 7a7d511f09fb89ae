"""
Unit tests for `core/credentials.py` – ordered credential policy.

The resolver is exercised against in-memory `CredentialConfig` snapshots only;
no configuration file is involved.
"""

import dataclasses
import unittest
from concurrent.futures import ThreadPoolExecutor

from core.credentials import CredentialConfig, CredentialResolver, CredentialRule
from shared.models import CredentialSource


def _config(**overrides):
    values = dict(
        default_api_key="open-meteo",
        premium_api_key="premium-key",
        user_api_keys={"alice": "alice-key"},
        premium_users={"alice": True, "bob": True, "carol": False},
        role_api_keys={"analyst": "analyst-key"},
        user_roles={"dave": "analyst", "erin": "intern"},
    )
    values.update(overrides)
    return CredentialConfig(**values)


class TestCredentialResolver(unittest.TestCase):

    def setUp(self):
        self.resolver = CredentialResolver(_config())

    def test_user_override_beats_premium(self):
        decision = self.resolver.resolve("alice")
        self.assertEqual(decision.key, "alice-key")
        self.assertEqual(decision.source, CredentialSource.USER_OVERRIDE)

    def test_premium_flag_selects_premium_key(self):
        decision = self.resolver.resolve("bob")
        self.assertEqual((decision.key, decision.source), ("premium-key", CredentialSource.PREMIUM))

    def test_premium_without_premium_key_falls_through(self):
        resolver = CredentialResolver(_config(premium_api_key=""))
        self.assertEqual(resolver.resolve("bob").source, CredentialSource.DEFAULT)

    def test_role_key_when_only_role_matches(self):
        decision = self.resolver.resolve("dave")
        self.assertEqual((decision.key, decision.source), ("analyst-key", CredentialSource.ROLE_BASED))

    def test_role_without_key_falls_back_to_default(self):
        decision = self.resolver.resolve("erin")
        self.assertEqual((decision.key, decision.source), ("open-meteo", CredentialSource.DEFAULT))

    def test_default_is_total(self):
        for caller_id in ("carol", "nobody", "", None):
            decision = self.resolver.resolve(caller_id)
            self.assertEqual(decision.source, CredentialSource.DEFAULT)
            self.assertEqual(decision.key, "open-meteo")

    def test_empty_default_uses_free_endpoint(self):
        resolver = CredentialResolver(CredentialConfig(default_api_key=""))
        self.assertEqual(resolver.resolve("x").key, "open-meteo")

    def test_custom_rules_are_evaluated_in_order(self):
        rules = [
            CredentialRule(CredentialSource.ROLE_BASED, lambda caller_id, cfg, roles: "first"),
            CredentialRule(CredentialSource.USER_OVERRIDE, lambda caller_id, cfg, roles: "second"),
        ]
        decision = CredentialResolver(_config(), rules=rules).resolve("alice")
        self.assertEqual((decision.key, decision.source), ("first", CredentialSource.ROLE_BASED))

    def test_forwarded_role_selects_role_key(self):
        decision = self.resolver.resolve("frank", roles=("viewer", "analyst"))
        self.assertEqual((decision.key, decision.source), ("analyst-key", CredentialSource.ROLE_BASED))

    def test_configured_role_outranks_forwarded_roles(self):
        resolver = CredentialResolver(_config(role_api_keys={"analyst": "analyst-key", "admin": "admin-key"}))
        self.assertEqual(resolver.resolve("dave", roles=("admin",)).key, "analyst-key")
        self.assertEqual(resolver.resolve("erin", roles=("admin",)).key, "admin-key")

    def test_forwarded_roles_do_not_outrank_premium(self):
        decision = self.resolver.resolve("bob", roles=("analyst",))
        self.assertEqual(decision.source, CredentialSource.PREMIUM)

    def test_forwarded_roles_without_keys_fall_back_to_default(self):
        decision = self.resolver.resolve("frank", roles=("viewer",))
        self.assertEqual(decision.source, CredentialSource.DEFAULT)
        self.assertEqual(CredentialResolver(_config()).resolve("", roles=("analyst",)).source,
                         CredentialSource.DEFAULT)

    def test_snapshot_is_read_only(self):
        config = _config()
        with self.assertRaises(dataclasses.FrozenInstanceError):
            config.default_api_key = "other"
        with self.assertRaises(TypeError):
            config.user_api_keys["mallory"] = "stolen"

    def test_snapshot_is_detached_from_source_mapping(self):
        source = {"alice": "alice-key"}
        config = CredentialConfig(user_api_keys=source)
        source["alice"] = "changed"
        self.assertEqual(CredentialResolver(config).resolve("alice").key, "alice-key")

    def test_from_mapping_reads_weather_section(self):
        config = CredentialConfig.from_mapping({
            "default_api_key": "open-meteo",
            "premium_api_key": "p",
            "premium_users": {"bob": True},
        })
        self.assertEqual(CredentialResolver(config).resolve("bob").key, "p")

    def test_decision_repr_hides_key(self):
        self.assertNotIn("alice-key", repr(self.resolver.resolve("alice")))

    def test_concurrent_resolution_is_consistent(self):
        callers = ["alice", "bob", "dave", "erin", "nobody"] * 40
        with ThreadPoolExecutor(max_workers=8) as pool:
            decisions = list(pool.map(self.resolver.resolve, callers))
        expected = {c: self.resolver.resolve(c) for c in set(callers)}
        for caller_id, decision in zip(callers, decisions):
            self.assertEqual(decision, expected[caller_id])


if __name__ == "__main__":
    unittest.main()
