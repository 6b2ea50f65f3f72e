from redeye_compiler.cli import main

main()
