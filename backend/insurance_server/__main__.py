from insurance_server.main import main

main()
