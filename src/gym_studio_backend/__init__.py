'''
Gym Studio backend: clients, class sessions, attendance, client groups,
payments and administrator accounts behind an authenticated dashboard API.
'''
