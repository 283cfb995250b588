from .cli.controller import main

raise SystemExit(main())
