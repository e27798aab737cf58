from src.replication.cli import main

main()
