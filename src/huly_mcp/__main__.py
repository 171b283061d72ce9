from .mcp_server import main

main()
