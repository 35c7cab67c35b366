from mvnresolve.cli import main

main()
