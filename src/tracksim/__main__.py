from tracksim.main import main

raise SystemExit(main())
