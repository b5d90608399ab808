from priority_dispatch.cli import main

raise SystemExit(main())
