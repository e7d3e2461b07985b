from __future__ import annotations

import random

INDIAN_FIRST_NAMES = [
    "Aarav", "Abhishek", "Ajay", "Akash", "Aman", "Ankit", "Arjun", "Arshdeep", "Ashwin", "Avesh",
    "Deepak", "Dhruv", "Harsh", "Ishan", "Jitesh", "Karan", "Kuldeep", "Mayank", "Mohit", "Mukesh",
    "Nitish", "Prasidh", "Prithvi", "Rahul", "Rajat", "Ravi", "Riyan", "Rohan", "Ruturaj", "Sai",
    "Sanju", "Sarfaraz", "Shahbaz", "Shardul", "Shivam", "Shreyas", "Shubman", "Suryansh", "Tilak", "Tushar",
    "Umran", "Varun", "Venkatesh", "Vijay", "Washington", "Yash", "Yashasvi", "Yuzvendra", "Zaheer", "Devdutt",
]

INDIAN_LAST_NAMES = [
    "Agarwal", "Bishnoi", "Chahar", "Chakravarthy", "Dube", "Gaikwad", "Gill", "Hooda", "Iyer", "Jaiswal",
    "Jadeja", "Kishan", "Khan", "Kumar", "Malik", "Mavi", "Mishra", "Nair", "Padikkal", "Pandya",
    "Patel", "Patidar", "Rana", "Rawat", "Reddy", "Sharma", "Singh", "Sudharsan", "Sundar", "Thakur",
    "Tewatia", "Tripathi", "Varma", "Verma", "Yadav", "Sen", "Desai", "Kulkarni", "Joshi", "Menon",
]

OVERSEAS_FIRST_NAMES = [
    "Aiden", "Ben", "Cameron", "Daryl", "David", "Devon", "Faf", "Glenn", "Harry", "Heinrich",
    "Jason", "Jofra", "Jos", "Kagiso", "Kane", "Liam", "Lockie", "Marcus", "Matthew", "Mitchell",
    "Nicholas", "Pat", "Quinton", "Rashid", "Rilee", "Sam", "Shimron", "Sunil", "Tim", "Trent",
    "Wanindu", "Mustafizur", "Naveen", "Phil", "Rovman", "Spencer", "Tristan", "Alzarri", "Josh", "Adam",
]

OVERSEAS_LAST_NAMES = [
    "Archer", "Bairstow", "Boult", "Brook", "Buttler", "Conway", "Cummins", "Curran", "Ferguson", "Green",
    "Hasaranga", "Hazlewood", "Head", "Hetmyer", "Joseph", "Klaasen", "Livingstone", "Markram", "Marsh", "Maxwell",
    "Miller", "Narine", "Nortje", "Pooran", "Powell", "Rabada", "Rossouw", "Russell", "Salt", "Santner",
    "Starc", "Stoinis", "Stubbs", "Williamson", "Zampa", "Wood", "Jansen", "Coetzee", "Mitchell", "Rahman",
]


class NameGenerator:
    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)
        self._used: set[str] = set()
        self._pools = {
            False: self._shuffled(INDIAN_FIRST_NAMES, INDIAN_LAST_NAMES),
            True: self._shuffled(OVERSEAS_FIRST_NAMES, OVERSEAS_LAST_NAMES),
        }
        self._idx = {False: 0, True: 0}

    def _shuffled(self, first_names: list[str], last_names: list[str]) -> list[str]:
        pool = [f"{first} {last}" for first in first_names for last in last_names]
        self._rng.shuffle(pool)
        return pool

    def next_name(self, overseas: bool = False) -> str:
        pool = self._pools[overseas]
        while self._idx[overseas] < len(pool):
            name = pool[self._idx[overseas]]
            self._idx[overseas] += 1
            if name not in self._used:
                self._used.add(name)
                return name

        suffix = 1
        while True:
            base = pool[self._rng.randrange(0, len(pool))]
            candidate = f"{base} {suffix}"
            if candidate not in self._used:
                self._used.add(candidate)
                return candidate
            suffix += 1
