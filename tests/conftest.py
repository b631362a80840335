pytest_plugins = [
    "tests.fixtures.aws_fixtures",
    "tests.fixtures.auth_fixtures",
    "tests.fixtures.app_fixtures",
]
