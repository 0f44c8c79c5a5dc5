from pluginswap.app import main

main()
