# This module handles Context engineering

# +---------------------+
# |   Sensor snapshot   |   (Latest reading per stream, copied on read)
# |---------------------|
# | Motion axes         |
# | Location fix        |
# | Device state        |
# +---------------------+
#         |
#         v
# +------------------------------+
# |           Context            |   (Derived per update, kept in a bounded history)
# |------------------------------|
# | Time-of-day bucket           |
# | Recent activity tags         |
# | Device state, preferences    |
# +------------------------------+
#         |
#         v
#   [Insight rules / history patterns / reasoning engine]
