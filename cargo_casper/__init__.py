"""cargo-casper -- scaffolds a Casper smart-contract project.

Generates a contract crate and an integration-test crate, wired with a
Makefile, a toolchain pin, CI config and Casper crate versions that are
compatible with this release of the tool.

Quick usage::

    cargo-casper new my_project
    cd my_project
    make prepare
    make test
"""

__version__ = "2.0.0"
