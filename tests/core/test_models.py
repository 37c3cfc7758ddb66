from __future__ import annotations

from datetime import UTC, datetime

from dependency_age.core.models import Package


def test_updates_return_new_packages() -> None:
    package = Package("doctrine/orm", "2.14.0")

    released = package.with_release_date(datetime(2023, 4, 15, tzinfo=UTC))
    latest = released.with_latest_version("2.16.0", datetime(2023, 11, 10, tzinfo=UTC))

    assert package.release_date is None
    assert released.latest_version is None
    assert latest.release_date == datetime(2023, 4, 15, tzinfo=UTC)
    assert latest.latest_version == "2.16.0"


def test_age_is_measured_against_the_reference_date() -> None:
    package = Package("doctrine/orm", "2.14.0").with_release_date(
        datetime(2023, 4, 15, tzinfo=UTC)
    )

    assert package.age_in_days(datetime(2023, 4, 25, tzinfo=UTC)) == 10
    assert Package("doctrine/orm", "2.14.0").age_in_days() is None


def test_development_dependencies_are_not_production() -> None:
    assert Package("phpunit/phpunit", "10.2.0", is_dev=True).is_production is False
    assert Package("doctrine/orm", "2.14.0").is_production is True
