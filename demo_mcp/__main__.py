import sys

from demo_mcp.main import main

sys.exit(main())
