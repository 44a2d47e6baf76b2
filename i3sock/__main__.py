"""Run the i3sock command line client."""

from .command import main

main()
