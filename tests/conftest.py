import os


def pytest_configure(config):
    os.environ.setdefault("POLICYBRIDGE_LOG_LEVEL", "DEBUG")
    os.environ.setdefault("POLICYBRIDGE_LOG_FORMAT", "text")
