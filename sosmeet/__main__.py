from sosmeet.main import run

run()
