from stack_aligner.app import main

raise SystemExit(main())
