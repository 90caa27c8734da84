"""Providers imported by the command line tests."""

from healthz import ProviderInfo


class DatabaseProbe:
    def check(self):
        return "failed"


providers = [
    ProviderInfo(
        check=DatabaseProbe(),
        type="DBConn",
        description="Ensure the database connection is up",
    ),
]


def make_providers():
    return [ProviderInfo(check=lambda: None, type="Cache", description="Cache reachable")]


not_providers = [object()]

not_a_list = 42
