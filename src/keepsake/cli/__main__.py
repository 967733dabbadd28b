"""Allow `python -m keepsake.cli`."""
from keepsake.cli.main import main

raise SystemExit(main())
