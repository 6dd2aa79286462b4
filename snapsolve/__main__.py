from snapsolve.cli import main

raise SystemExit(main())
