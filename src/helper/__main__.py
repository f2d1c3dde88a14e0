from helper.handler import main

raise SystemExit(main())
