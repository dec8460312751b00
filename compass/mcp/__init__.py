"""Command parameters and dispatch of compass.* commands to the services."""