from responses_bridge.cli import main

raise SystemExit(main())
