from mediaflow_mux.main import run

run()
