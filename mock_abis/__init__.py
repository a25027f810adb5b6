"""Mock ABIS: a stand-in biometric identification provider for integration testing."""

__version__ = "1.0.0"
