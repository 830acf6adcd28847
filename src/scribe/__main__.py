"""Allow ``python -m scribe``."""

from .app import main

raise SystemExit(main())
