from melscope.cli import main

main()
