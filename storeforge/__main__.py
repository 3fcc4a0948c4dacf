"""Run the storeforge command line tool with `python -m storeforge`."""

from storeforge.tool.storeforge import main

main()
