from branchdo.cli.main import main

main()
