from metabase_mcp.cli import main

main()
