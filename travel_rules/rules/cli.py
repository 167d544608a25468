"""
CLI interface for the travel rules database.

Provides command-line tools for seeding, searching and inspecting rules.
"""

from typing import Optional

import click

from travel_rules.config import config
from travel_rules.logging import initialize_logging
from travel_rules.rules.database import RuleDatabase
from travel_rules.rules.formatting import (
    format_fine,
    format_rule_detailed,
    severity_label,
)
from travel_rules.rules.migration import import_seed_rules
from travel_rules.rules.schemas import Category, Language, Rule
from travel_rules.rules.search import RuleSearchEngine, SearchQuery
from travel_rules.utils.pagination import format_page_counter, paginate

database_url_option = click.option(
    "--database-url",
    default=config.database.url,
    show_default=True,
    help="Database connection URL",
)

language_option = click.option(
    "--language",
    type=click.Choice([language.value for language in Language]),
    default=Language.EN.value,
    help="Language to display rules in",
)


def _country_code(ctx, param, value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if len(value) != 2:
        raise click.BadParameter("expected a two-letter country code")
    return value.upper()


def _echo_rule_line(rule: Rule, language: Language) -> None:
    content = rule.content.for_language(language)
    click.echo(
        f"[{rule.id}] {content.title} "
        f"({rule.country_code}/{rule.category}, "
        f"{severity_label(rule.severity, language)}, {rule.views} views)"
    )


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    default=config.logging.level,
    help="Console log level",
)
@click.option("--log-file/--no-log-file", default=False, help="Also write log files")
def cli(log_level: str, log_file: bool):
    """Travel Rules Database CLI."""
    initialize_logging(config.logging, level=log_level, enable_file_logging=log_file)


@cli.command()
@database_url_option
def init(database_url: str):
    """Initialize the rules database."""
    db = RuleDatabase(database_url)
    click.echo(f"Initialized database: {database_url}")
    db.close()


@cli.command(name="import")
@click.argument("rules_path", type=click.Path(exists=True))
@database_url_option
def import_rules(rules_path: str, database_url: str):
    """Import seed rules from a JSON file or directory."""
    click.echo(f"Importing rules from {rules_path}...")

    result = import_seed_rules(rules_path=rules_path, database_url=database_url)

    click.echo("\nImport complete:")
    click.echo(f"  Files processed: {result.files_processed}")
    click.echo(f"  Rules imported: {result.rules_imported}")
    click.echo(f"  Rules skipped: {result.rules_skipped}")
    click.echo(f"  Errors: {result.errors}")

    if result.error_messages:
        click.echo("\nErrors:")
        for error in result.error_messages:
            click.echo(f"  - {error}")


@cli.command()
@click.argument("query")
@click.option("--country", callback=_country_code, help="Filter by country code")
@click.option(
    "--category",
    type=click.Choice([category.value for category in Category]),
    help="Filter by category",
)
@click.option(
    "--limit", type=int, default=config.search.default_limit, help="Maximum results"
)
@click.option("--page", type=int, default=1, help="Page of results to show")
@click.option(
    "--page-size",
    type=int,
    default=config.pagination.rules_per_page,
    help="Results per page",
)
@language_option
@database_url_option
def search(
    query: str,
    country: Optional[str],
    category: Optional[str],
    limit: int,
    page: int,
    page_size: int,
    language: str,
    database_url: str,
):
    """Search rules by free text in both languages."""
    db = RuleDatabase(database_url)
    engine = RuleSearchEngine(
        db,
        overfetch_factor=config.search.overfetch_factor,
        min_query_length=config.search.min_query_length,
    )
    lang = Language(language)

    try:
        if not engine.is_valid_query(query):
            click.echo(
                f"Query too short: use at least "
                f"{config.search.min_query_length} characters",
                err=True,
            )
            raise SystemExit(2)

        results = engine.search(
            SearchQuery(
                query_text=query,
                country_code=country,
                category=category,
                limit=limit,
            )
        )

        if not results.ok:
            click.echo(f"Search unavailable: {results.error}", err=True)
            raise SystemExit(1)

        if not results.count:
            click.echo("No rules found.")
            return

        page_result = paginate(results.get_rules(), page, page_size)

        click.echo(f"Found {results.count} rules:\n")
        for rule in page_result.items:
            _echo_rule_line(rule, lang)

        counter = format_page_counter(
            page_result.current_page, page_result.total_pages, lang
        )
        click.echo(f"\n{counter}")
    finally:
        db.close()


@cli.command()
@click.argument("rule_id")
@language_option
@database_url_option
def show(rule_id: str, language: str, database_url: str):
    """Show a rule in full."""
    db = RuleDatabase(database_url)

    try:
        rule = db.get_rule(rule_id)
        if rule is None:
            click.echo(f"Rule not found: {rule_id}", err=True)
            raise SystemExit(1)

        click.echo(format_rule_detailed(rule, Language(language)))
    finally:
        db.close()


@cli.command()
@click.option("--limit", type=int, default=5, help="Number of rules")
@language_option
@database_url_option
def popular(limit: int, language: str, database_url: str):
    """Show the most viewed rules."""
    db = RuleDatabase(database_url)
    lang = Language(language)

    rules = db.get_popular_rules(limit)

    click.echo(f"Top {len(rules)} rules by views:\n")
    for rule in rules:
        _echo_rule_line(rule, lang)
        fine = format_fine(rule.fine_min, rule.fine_max, rule.fine_currency, lang)
        if fine:
            click.echo(f"    {fine}")

    db.close()


@cli.command()
@database_url_option
def stats(database_url: str):
    """Show database statistics."""
    db = RuleDatabase(database_url)

    stats = db.get_database_stats()

    click.echo("Database Statistics")
    click.echo("=" * 50)
    click.echo(f"Total Rules: {stats.total_rules}")
    click.echo(f"Active Rules: {stats.active_rules}")
    click.echo(f"Total Views: {stats.total_views}")
    click.echo(f"Feedback Entries: {stats.total_feedback}")
    click.echo(f"Analytics Events: {stats.total_events}")

    click.echo("\nRules by Country:")
    for country_code, count in sorted(stats.rules_by_country.items()):
        click.echo(f"  {country_code}: {count} rules")

    click.echo("\nRules by Category:")
    for category, count in sorted(stats.rules_by_category.items()):
        click.echo(f"  {category}: {count} rules")

    db.close()


if __name__ == "__main__":
    cli()
