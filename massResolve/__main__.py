from massResolve.cli import run

run()
