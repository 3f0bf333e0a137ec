"""linkplan: build-configuration resolver for the native C++ library.

Resolves compiler flags, picks a single link mode, decides which
third-party artifacts to import, and registers test/tooling targets.
The resulting plan is handed to an external compiler and test runner.
"""

__version__ = "0.1.0"
