from tsinline.cli import main

raise SystemExit(main())
