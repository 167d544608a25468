"""
Import of seed rule files into the rule database.

Seed files are JSON: either a list of rule objects or an object with a
``rules`` list. Each rule carries nested ``content.en`` / ``content.ru``
text, for example::

    [
      {
        "id": "IT_TRANSPORT_001",
        "country_code": "IT",
        "category": "transport",
        "severity": "high",
        "content": {
          "en": {"title": "...", "description": "...", "details": "..."},
          "ru": {"title": "...", "description": "..."}
        },
        "fine_min": 80, "fine_max": 335, "fine_currency": "EUR",
        "sources": [{"type": "law", "url": "https://...", "title": "..."}]
      }
    ]
"""

import json
from pathlib import Path
from typing import List, Union

from loguru import logger

from travel_rules.rules.database import RuleDatabase
from travel_rules.rules.schemas import ImportResult, RuleCreate


class RuleImporter:
    """
    Imports seed rules from JSON files into a rule database.

    Rules already present (same ID) are skipped, so importing the same seed
    twice is harmless.
    """

    def __init__(self, rule_db: RuleDatabase):
        """
        Initialize importer.

        Args:
            rule_db: RuleDatabase instance to import into
        """
        self.rule_db = rule_db

    def import_path(self, path: Union[str, Path]) -> ImportResult:
        """Import a single seed file or every seed file under a directory."""
        path = Path(path)
        if path.is_dir():
            return self.import_directory(path)

        stats = {
            "files_processed": 0,
            "rules_imported": 0,
            "rules_skipped": 0,
            "errors": 0,
            "error_messages": [],
        }
        self._import_into(path, stats)
        return ImportResult(**stats)

    def import_directory(self, rules_dir: Union[str, Path]) -> ImportResult:
        """
        Import all JSON seed files in a directory (recursively).

        Args:
            rules_dir: Directory containing seed files

        Returns:
            ImportResult with statistics

        Raises:
            ValueError: If the directory does not exist
        """
        rules_path = Path(rules_dir)

        if not rules_path.exists():
            raise ValueError(f"Rules directory does not exist: {rules_dir}")

        stats = {
            "files_processed": 0,
            "rules_imported": 0,
            "rules_skipped": 0,
            "errors": 0,
            "error_messages": [],
        }

        seed_files = sorted(rules_path.glob("**/*.json"))

        logger.info(f"Found {len(seed_files)} seed files in {rules_dir}")

        for seed_file in seed_files:
            self._import_into(seed_file, stats)

        logger.info(
            f"Import complete: {stats['rules_imported']} rules imported, "
            f"{stats['rules_skipped']} skipped, {stats['errors']} errors"
        )

        return ImportResult(**stats)

    def _import_into(self, seed_file: Path, stats: dict) -> None:
        try:
            result = self.import_file(seed_file)

            stats["files_processed"] += 1
            stats["rules_imported"] += result["rules_imported"]
            stats["rules_skipped"] += result["rules_skipped"]

        except Exception as e:
            stats["errors"] += 1
            error_msg = f"Error processing {seed_file}: {e}"
            stats["error_messages"].append(error_msg)
            logger.error(error_msg)

    def import_file(self, seed_file: Union[str, Path]) -> dict:
        """
        Import a single seed file.

        The whole file is validated before anything is written, so a
        malformed rule rejects the file instead of importing part of it.

        Args:
            seed_file: Path to JSON seed file

        Returns:
            dict with import statistics

        Raises:
            ValueError: If the file is not valid JSON or holds invalid rules
        """
        stats = {"rules_imported": 0, "rules_skipped": 0}

        rules = self._parse_seed_file(Path(seed_file))

        logger.debug(f"Parsing {seed_file}: found {len(rules)} rules")

        for rule in rules:
            try:
                self.rule_db.add_rule(rule)
                stats["rules_imported"] += 1
            except ValueError as e:
                # Rule already exists
                logger.debug(f"Skipping duplicate rule: {e}")
                stats["rules_skipped"] += 1

        return stats

    def _parse_seed_file(self, seed_file: Path) -> List[RuleCreate]:
        with open(seed_file, encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON: {e}") from e

        if isinstance(data, dict):
            data = data.get("rules", [])
        if not isinstance(data, list):
            raise ValueError("Seed file must hold a list of rules")

        return [RuleCreate.model_validate(item) for item in data]


def import_seed_rules(
    rules_path: Union[str, Path],
    database_url: str = "sqlite:///travel_rules.db",
) -> ImportResult:
    """
    Convenience function to import seed rules into a database.

    Args:
        rules_path: Seed file or directory of seed files
        database_url: Database connection URL

    Returns:
        ImportResult with statistics

    Example:
        >>> result = import_seed_rules("./seeds", "sqlite:///travel_rules.db")
        >>> print(f"Imported {result.rules_imported} rules")
    """
    db = RuleDatabase(database_url)

    try:
        return RuleImporter(db).import_path(rules_path)
    finally:
        db.close()
