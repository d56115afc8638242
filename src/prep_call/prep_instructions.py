"""Colonoscopy prep instructions handed to the voice agent at the start of each call."""

COLONOSCOPY_PREP_INSTRUCTIONS = """\
Providence St. Jude Heritage Medical Group

1837 Sunnycrest Drive, Fullerton, CA 92835

Phone: 714-446-5831

COLONOSCOPY PREPARATION INSTRUCTIONS

Thank you for choosing us for your care. PLEASE READ THESE INSTRUCTIONS AT LEAST ONE WEEK PRIOR TO YOUR PROCEDURE.

TRANSPORTATION

Your driver must be a responsible adult (18+) and stay with you for 4 hours post procedure at home. On the day of your procedure, your driver must check in with you and provide a valid working phone number. This is to ensure proper communication with the doctor and the nurse when the procedure is complete, and you are ready to be picked up. The wait time for your driver may be up to 3 hours, and we ask that they remain 15 minutes from the facility.

Arranging transportation is necessary, we will not perform your procedure if you have driven yourself or have not arranged a ride home. If needed, a list of concierge transportation services can be provided upon request. If you plan to take a taxi/Lyft/Uber, or transportation arranged through your insurance, you must still be accompanied by a responsible adult to/from the facility and arrange for after-care at home.

PRE-PROCEDURE SCREENING

An important step in preparing you for your procedures is the pre-procedure screening. A registered nurse will call you 1-3 days prior to your procedure between 8am and 4pm. They will review pre-procedure instructions, what to expect during your recovery, and any concern regarding your comfort post procedure.

MEDICATIONS

Take your blood pressure or heart medications the morning of the procedure with only a sip of water.

If you are currently taking BLOOD THINNERS (Plavix, Coumadin, Warfarin, Xarelto, Pradaxa, Eliquis, Effient, Aggrenox, Clopidogrel), please make sure you receive instructions from our office on when to stop. You may take Tylenol and Aspirin.

If you are DIABETIC, and take oral diabetic medicine, please do not take oral diabetic medicines the day before or the day of your procedure. Do not take non-insulin injectable medicines on the day of your procedure. If you are taking insulin, please contact the Doctor who prescribed your insulin for pre-procedure instructions.

COLONOSCOPY PREPARATION INSTRUCTIONS

To allow the doctor to have a clear view of your colon, it must be free of stool. IT IS VERY IMPORTANT YOU READ ALL THESE INSTRUCTIONS.

SHOPPING LIST OF ITEMS NEEDED FOR COLONOSCOPY

- MiraLax container with at least 24 doses. Any brand is acceptable.
- Two pills of Dulcolax 5mg tablets. Any brand is acceptable.
- Three 28-ounce bottles of Gatorade or Electrolyte Drink. Sugar-free options are acceptable. NO RED, ORANGE or PURPLE.
- Three Gas-X 125mg gelcaps or chewable tables. Any brand is acceptable.

The day BEFORE your procedure, DO NOT EAT ALL DAY; ONLY DRINK CLEAR LIQUIDS (at least 8 ounces every waking hour) to avoid dehydration.

What are clear liquids? (NO RED, ORANGE or PURPLE)
- Beverages: Sprite, 7-Up, Black coffee or tea (no cream/dairy)
- Gatorade, Sport drinks with electrolytes
- Soda (Sprite, 7-Up, Root beer, Colas are fine, including diet soda)
- Clear fruit juices: Apple and white grape juice
- Clear soups: Chicken/beef broth
- Desserts: Popsicles, Jell-O, hard candy

Do not drink alcohol. No whole nuts, seeds, whole grain or popcorn 3 days prior to the Procedure.

DAY BEFORE YOUR PROCEDURE

YOU CANNOT EAT ANY SOLID FOODS TODAY; ONLY DRINK CLEAR LIQUIDS (at least 8 ounces every waking hour) to avoid dehydration.

At 3:00 pm, you must take 2 laxatives Dulcolax (5 mg pill each) with 8 ounces of clear liquids.

At 4:00 pm, mix 8 capfuls of MiraLax with one 28 ounce bottle of water or Gatorade drink. Drink this mixture 8-10 ounces at a time, every 10-15 minutes so that you finish within one hour. Once complete, take 1 Gas-X.

At 7:00 pm, mix 8 capfuls of MiraLax with one 28 ounce bottle of water or Gatorade drink. Drink this mixture 8-10 ounces at a time, every 10-15 minutes so that you finish within one hour. Once complete, take 1 Gas-X.

ON THE DAY OF YOUR PROCEDURE

Mix 8 capfuls of MiraLax with one 28 ounce bottle of water or Gatorade drink. Drink this mixture 8-10 ounces at a time, every 10-15 minutes so that you finish within one hour. Once complete, take 1 Gas-X.

No more liquids after this!

You are ready if your stool looks yellow and clear like urine.

Additional Instructions:
- It is recommended that you protect the skin in the anal area with Vaseline or vitamin A & D ointment to prevent irritation during bowel preparation.
- If you have a pacemaker or implanted defibrillator, please bring your information card.
- Please leave all jewelry at home, including your wedding ring.
- Please bring a photo ID and your insurance card.
"""
