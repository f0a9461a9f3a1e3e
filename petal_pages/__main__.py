"""Allow ``python -m petal_pages``; the publish pipeline builds this way."""

from .cli import main

main()
