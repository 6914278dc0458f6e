import copy
import unittest

from charging_simulator.config.deprecation import (
    migrate_deprecated_keys,
    warn_deprecated_configuration_key,
)

LOGGER_NAME = "charging_simulator.config.deprecation"


class DeprecatedKeyWarningTests(unittest.TestCase):
    def test_top_level_key_with_guidance(self) -> None:
        with self.assertLogs(LOGGER_NAME, level="WARNING") as captured:
            warn_deprecated_configuration_key({"consoleLog": True}, "consoleLog", guidance="Use 'logConsole' instead")

        self.assertEqual(len(captured.output), 1)
        self.assertRegex(
            captured.output[0],
            r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} Simulator configuration \| "
            r"Deprecated configuration key 'consoleLog' usage\. Use 'logConsole' instead$",
        )

    def test_key_inside_section(self) -> None:
        with self.assertLogs(LOGGER_NAME, level="WARNING") as captured:
            warn_deprecated_configuration_key({"performanceStorage": {"URI": "x"}}, "URI", "performanceStorage")

        self.assertTrue(captured.output[0].endswith("Deprecated configuration key 'URI' usage in section 'performanceStorage'"))

    def test_absent_key_is_silent(self) -> None:
        with self.assertNoLogs(LOGGER_NAME, level="WARNING"):
            warn_deprecated_configuration_key({"performanceStorage": {"uri": "x"}}, "URI", "performanceStorage")
            warn_deprecated_configuration_key({}, "consoleLog", guidance="   ")

    def test_document_is_not_mutated(self) -> None:
        document = {"errorFile": "e.log", "section": {"a": 1}}
        snapshot = copy.deepcopy(document)

        with self.assertLogs(LOGGER_NAME, level="WARNING"):
            warn_deprecated_configuration_key(document, "errorFile")
            warn_deprecated_configuration_key(document, "a", "section")

        self.assertEqual(document, snapshot)

    def test_null_value_still_counts_as_usage(self) -> None:
        with self.assertLogs(LOGGER_NAME, level="WARNING") as captured:
            warn_deprecated_configuration_key({"consoleLog": None}, "consoleLog")
            warn_deprecated_configuration_key({"performanceStorage": {"URI": None}}, "URI", "performanceStorage")

        self.assertEqual(len(captured.output), 2)
        self.assertTrue(captured.output[1].endswith("usage in section 'performanceStorage'"))


class DeprecatedKeyMigrationTests(unittest.TestCase):
    def test_legacy_values_are_copied_to_absent_canonical_keys(self) -> None:
        document = {"stationTemplateURLs": [{"file": "a.json"}], "supervisionURLs": "ws://a"}

        migrated = migrate_deprecated_keys(document)

        self.assertEqual(migrated["stationTemplateUrls"], [{"file": "a.json"}])
        self.assertEqual(migrated["supervisionUrls"], "ws://a")
        self.assertIn("stationTemplateURLs", migrated)
        self.assertNotIn("stationTemplateUrls", document)

    def test_canonical_keys_are_left_alone(self) -> None:
        migrated = migrate_deprecated_keys({"supervisionURLs": "ws://old", "supervisionUrls": "ws://new"})

        self.assertEqual(migrated["supervisionUrls"], "ws://new")

    def test_null_legacy_value_is_migrated(self) -> None:
        migrated = migrate_deprecated_keys({"supervisionURLs": None})

        self.assertIn("supervisionUrls", migrated)
        self.assertIsNone(migrated["supervisionUrls"])


if __name__ == "__main__":
    unittest.main()
