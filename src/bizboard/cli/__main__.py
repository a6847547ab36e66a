from bizboard.cli.main import main

main()
