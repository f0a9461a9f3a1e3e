"""Edit, preview, and publish a small static marketing site.

The package compiles a JSON content tree into the site template, instruments
the result so an editor can change text, images, and whole sections in a
live preview, and publishes the edited content to object storage.

Exports
-------
- ``app``: Cyclopts application behind the ``petal`` command.
- ``main``: Convenience function that invokes the app.
- ``compile_template``: The pure ``(template, tree) -> html`` compiler.

Examples
--------
>>> from petal_pages import compile_template
>>> compile_template("<h1>{{hero.title}}</h1>", {"hero": {"title": "Blooms"}}, sections=())
'<h1>Blooms</h1>'
>>> from petal_pages import main
>>> main()  # doctest: +SKIP
"""

from __future__ import annotations

from .cli import app, main
from .compiler import compile_template

__all__ = ["app", "compile_template", "main"]
