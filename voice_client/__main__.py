import sys

from voice_client.main import main

sys.exit(main())
